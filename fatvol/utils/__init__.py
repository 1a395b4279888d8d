"""Utilities package"""

from fatvol.utils.logger import get_logger, setup_logging

__all__ = ['get_logger', 'setup_logging']
