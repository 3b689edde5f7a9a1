"""
Errors raised along the benchmarking workflow.

Configuration errors are fatal and raised before any expensive step.
Failures of an external collaborator are wrapped in a CollaboratorError
which tells for which site and in which stage it went wrong.
"""


class ConfigurationError(ValueError):
    pass


class MissingMetadataError(ConfigurationError):
    pass


class DuplicateSiteError(ConfigurationError):
    pass


class MissingForcingError(ConfigurationError):
    pass


class InvalidBoundsError(ConfigurationError):
    pass


class UnitConversionError(ConfigurationError):
    pass


class CollaboratorError(RuntimeError):

    def __init__(self, message, site=None, stage=None):
        self.site = site
        self.stage = stage
        prefix = []
        if stage is not None:
            prefix.append(f'[{stage}]')
        if site is not None:
            prefix.append(f'[{site}]')
        super().__init__(' '.join(prefix + [str(message)]))


class OptimizerError(CollaboratorError):

    def __init__(self, message, diagnostics=None):
        self.diagnostics = diagnostics
        super().__init__(message, stage='calibration')
