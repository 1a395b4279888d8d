"""
Setup configuration for fatvol
"""

from setuptools import setup, find_packages
import os

# Read README
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='fatvol',
    version='1.0.0',
    description='FAT volume lifecycle service - check, mount and format vfat volumes on removable media',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    license='Apache License 2.0',

    packages=find_packages(exclude=['tests', 'tests.*']),

    install_requires=[
        'click>=8.1.3',
        'tabulate>=0.9.0',
        'psutil>=5.9.0',
        'python-dateutil>=2.8.2',
        'python-json-logger>=3.1.0',
    ],

    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'pytest-mock>=3.11.1',
            'black>=23.7.0',
            'flake8>=6.1.0',
            'mypy>=1.4.1',
        ],
    },

    entry_points={
        'console_scripts': [
            'fatvol-cli=fatvol.cli:cli',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: System :: Filesystems',
        'Topic :: System :: Systems Administration',
    ],

    python_requires='>=3.8',

    include_package_data=True,
    zip_safe=False,

    keywords='fat vfat mount fsck mkfs removable media',
)
