"""
In this code a light use efficiency model is stored which can be
used as simulation model in the benchmark. It follows:
GPP = kphio * Mc * PPFD * fAPAR * Et * ECO2
With:
GPP: Gross Primary Production [gC/m²/day]
kphio: Quantum yield efficiency [molC/mol photons]
Mc: Molar mass of carbon (12.0107) [g/mol]
PPFD: Photosynthetic photon flux density [mol/m²/day]
fAPAR: PAR fraction absorbed by green vegetation (0-1)
Et: Normalized temperature effect (0-1)
ECO2: Normalized CO2 fertilization effect

The driver tables hold the PPFD as flux per second, the model brings it
back to a daily total.
"""

# import needed packages
import numpy as np
import pandas as pd

from pmodelbench.constants import c_molmass, sec_per_day


def Et(T12):
    """
    Function that will calculate the normalized temperature effect throught time
    (temperature response curve).

    :param T12: Temperature [K]
    :return: the value of pTd.
    """

    # CONSTANT PARAMETERS
    # constant
    c1 = 21.77
    # Activation energy
    HaP = 52750
    # Universal gas constant
    Rg = 8.3144
    # Entropy of the denaturation equilibrium of CO2
    DeltaS = 704.98
    # Deactivation energy
    HdP = 211000

    # CALCULATION
    pTd_numerator = np.exp(c1 - (HaP / (Rg * T12)))
    pTd_denominator = 1 + np.exp(((DeltaS * T12) - HdP) / (Rg * T12))
    pTd = pTd_numerator / pTd_denominator

    # RESULTS
    return pTd


def Eco2(CO2conc, T12):
    """"
    Code to determine the CO2 fertilization effect, which
    is driven by the temperature and the CO2 concentration.

    :param CO2conc: Actual CO2 concentration [PPMv]
    :param T12: Temperature [K]
    """

    # CONSTANTS
    O2conc = 20.9
    CO2concref = 281
    Rg = 8.31
    Ea1 = 59400
    A1 = 2.419 * (10 ** 13)
    Ea2 = 109600
    A2 = 1.976 * (10 ** 22)
    E0 = 13913.5
    A0 = 8240
    Et = -42896.9
    At = 7.87 * (10 ** -5)

    # CALCULATION
    T12 = np.asarray(T12, dtype=float)
    Km = np.where(T12 >= 288.13,
                  A1 * np.exp(-Ea1 / (Rg * T12)),
                  A2 * np.exp(-Ea2 / (Rg * T12)))

    K0 = A0 * np.exp(-E0 / (Rg * T12))
    t = At * np.exp(-Et / (Rg * T12))

    Nco2FE_numerator1 = CO2conc - (O2conc / (2 * t))
    Nco2FE_numerator2 = (Km * (1 + (O2conc / K0))) + CO2concref
    Nco2FE_denominator1 = CO2concref - (O2conc / (2 * t))
    Nco2FE_denominator2 = (Km * (1 + (O2conc / K0)) + CO2conc)

    Nco2FE = (Nco2FE_numerator1 / Nco2FE_denominator1) * \
             (Nco2FE_numerator2 / Nco2FE_denominator2)

    # RESULTS
    return Nco2FE


class LightUseEfficiencyModel:
    """
    Site-level GPP model with the quantum yield efficiency as only
    parameter. The other parameters of a set are accepted and ignored.
    """

    required_params = ('kphio',)

    def run_site(self, sitename, site_info, params_soil,
                 forcing: pd.DataFrame, params: dict) -> pd.DataFrame:
        if forcing.empty:
            return pd.DataFrame(columns=['date', 'gpp', 'fapar',
                                         'ftemp', 'fco2'])
        T_k = forcing['temp'].values + 273.15
        ppfd_day = forcing['ppfd'].values * sec_per_day
        f_temp = Et(T_k)
        f_co2 = Eco2(forcing['co2'].values, T_k)
        gpp = params['kphio'] * c_molmass * ppfd_day \
            * forcing['fapar'].values * f_temp * f_co2
        return pd.DataFrame({'date': forcing['date'].values,
                             'gpp': gpp,
                             'fapar': forcing['fapar'].values,
                             'ftemp': f_temp,
                             'fco2': f_co2})


class CallableModel:
    """Wraps a function with the run_site signature as model"""

    def __init__(self, func):
        self.func = func

    def run_site(self, sitename, site_info, params_soil, forcing, params):
        return self.func(sitename, site_info, params_soil, forcing, params)
