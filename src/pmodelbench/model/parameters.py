"""
Model parameter sets.

A parameter set maps the parameter names on a scalar value. It also
keeps track of which of them may be calibrated; a calibration result can
only overwrite these, the other (diagnostic) constants stay untouched.
"""

from typing import Dict, Iterable

from pmodelbench.constants import DEFAULT_PARAMS, ERR_PARAM
from pmodelbench.exceptions import ConfigurationError


class ParameterSet:

    def __init__(self, values: Dict[str, float],
                 calibratable: Iterable[str] = (),
                 irrelevant: Iterable[str] = (),
                 calibrated: bool = False):
        self._values = {name: float(value) for name, value in values.items()}
        self.calibratable = frozenset(calibratable)
        self.irrelevant = frozenset(irrelevant)
        self.calibrated = calibrated
        unknown = self.calibratable - set(self._values) - {ERR_PARAM}
        if unknown:
            raise ConfigurationError('CALIBRATABLE PARAMETER(S) WITHOUT '
                                     f'VALUE: {sorted(unknown)}')

    @classmethod
    def default(cls, model_version: str):
        if model_version not in DEFAULT_PARAMS:
            raise ConfigurationError(f'NO DEFAULT PARAMETERS FOR '
                                     f'{model_version}')
        prior = DEFAULT_PARAMS.get(model_version)
        return cls(prior['values'], prior['calibratable'],
                   prior['irrelevant'])

    def __getitem__(self, name):
        return self._values[name]

    def __contains__(self, name):
        return name in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __eq__(self, other):
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return (self._values == other._values
                and self.calibratable == other.calibratable)

    def __repr__(self):
        kind = 'calibrated' if self.calibrated else 'prior'
        return f'ParameterSet({kind}, {self._values})'

    def as_dict(self, model_only=False) -> Dict[str, float]:
        """
        The parameter values, without the error model
        parameter if only the model parameters are asked.
        """
        if model_only:
            return {k: v for k, v in self._values.items() if k != ERR_PARAM}
        return dict(self._values)

    def check_calibratable(self, names: Iterable[str]):
        not_allowed = sorted(set(names) - self.calibratable - {ERR_PARAM})
        if not_allowed:
            raise ConfigurationError('PARAMETER(S) CANNOT BE CALIBRATED: '
                                     f'{not_allowed}')

    def update(self, new_values: Dict[str, float]) -> 'ParameterSet':
        """
        New parameter set in which the given calibratable
        parameters are overwritten.
        """
        self.check_calibratable(new_values)
        values = dict(self._values)
        values.update({k: float(v) for k, v in new_values.items()})
        return ParameterSet(values, self.calibratable, self.irrelevant,
                            calibrated=True)
