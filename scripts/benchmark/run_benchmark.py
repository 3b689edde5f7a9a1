""""
Script that will run the benchmark of the simulated GPP against the
FLUXNET2015 observations for the settings stored in the
Generic_settings.json of the base folder.

Usage: python run_benchmark.py [basedir]
"""

# import needed packages
import sys
from pathlib import Path

from loguru import logger

from pmodelbench.config import load_settings
from pmodelbench.workflow import main


if __name__ == "__main__":

    basedir = Path(sys.argv[1]) if len(sys.argv) > 1 \
        else Path(__file__).parent
    settingsfile = basedir / 'Generic_settings.json'
    settings, _ = load_settings(settingsfile)
    logger.info(f'USING SETTINGS {settingsfile}')
    main(basedir, settings)
