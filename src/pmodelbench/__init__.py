from pmodelbench._version import __version__  # NOQA
