"""Shared fixtures for fatvol tests"""

import logging

import pytest

from fatvol.config import FatVolConfig
from fatvol.drivers.vfat import VfatDriver
from fatvol.utils.process import ProcessResult


class FakeRunner:
    """
    Stands in for ProcessRunner.

    execute() pops exit codes from `returncodes` and records every command;
    run_with_timeout() runs the task in-process.
    """

    def __init__(self):
        self.returncodes = []
        self.commands = []
        self.timeouts = []
        self.task_timeouts = []
        self.execute_error = None
        self.task_error = None

    def execute(self, cmd, timeout=None):
        self.commands.append(list(cmd))
        self.timeouts.append(timeout)
        if self.execute_error:
            raise self.execute_error
        return ProcessResult(self.returncodes.pop(0), '', '')

    def run_with_timeout(self, func, args=(), timeout=None):
        self.task_timeouts.append(timeout)
        if self.task_error:
            raise self.task_error
        return func(*args)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def config():
    return FatVolConfig(
        mkfs_path='/sbin/newfs_msdos',
        fsck_path='/sbin/fsck_msdos',
        fsck_context='u:r:fsck_untrusted:s0',
        runcon_path='/usr/bin/runcon',
        fsck_timeout=45,
        mount_timeout=20,
    )


@pytest.fixture
def driver(config, fake_runner):
    return VfatDriver(config, runner=fake_runner)


@pytest.fixture(autouse=True)
def reset_fatvol_logger():
    """Drop handlers installed by setup_logging() during a test"""
    yield
    logger = logging.getLogger('fatvol')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
