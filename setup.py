#!/usr/bin/env python3

from setuptools import setup, find_packages

# Load the version info.
#
# Note that we cannot simply import the module, since dependencies listed
# in setup() will very likely not be installed yet when setup.py run.
#
# See:
#   https://packaging.python.org/guides/single-sourcing-package-version

__version__ = None

with open('src/pmodelbench/_version.py') as fp:
    exec(fp.read())

# Configure setuptools

setup(
    name='pmodelbench',
    version=__version__,
    description='Benchmarking of site-level GPP simulations against FLUXNET2015',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'pandas',
        'scipy',
        'scikit-learn',
        'loguru'
    ],
    extras_require={
        'test': ['pytest']
    },
    include_package_data=True
)
