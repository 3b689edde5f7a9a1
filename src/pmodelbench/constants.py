# seconds in a day, used to bring the daily totals
# of precipitation and radiation to a flux per second
sec_per_day = 86400

# molar mass of carbon [g/mol]
c_molmass = 12.0107

# the model versions for which a driver
# schema and a default parameter set exist
MODEL_VERSIONS = ['v3.0', 'v4.2']

# columns that must be present in the raw forcing table
FORCING_REQUIRED = ['sitename', 'date', 'temp', 'prec',
                    'ppfd', 'vpd', 'patm', 'co2', 'fapar']

# optional columns passed on unchanged when they are available,
# optional tmin and tmax only feed the fields of the newer version
FORCING_PASSTHROUGH = ['netrad', 'ccov']

# fields given as daily totals that should be expressed per second
FLUX_FIELDS = ['prec', 'ppfd']

# columns in the forcing that the simulation call expects
FORCING_SCHEMA = {
    'v3.0': ['date', 'temp', 'prec', 'ppfd', 'vpd',
             'patm', 'co2', 'fapar'],
    'v4.2': ['date', 'temp', 'rain', 'snow', 'ppfd', 'vpd',
             'patm', 'co2', 'fapar', 'tmin', 'tmax']
}

# renaming applied once the liquid/solid split exists
FORCING_RENAME = {
    'v3.0': {},
    'v4.2': {'prec': 'rain'}
}

SITEINFO_COLUMNS = ['sitename', 'lon', 'lat', 'elv', 'whc',
                    'classid', 'c4', 'koeppen_code']

SOIL_COLUMNS = ['sitename', 'layer', 'fsand', 'fclay',
                'forg', 'fgravel']


# Prior parameter values used in the benchmarking runs.
# Values listed under 'irrelevant' are placeholders which
# the model version does not use for GPP.
DEFAULT_PARAMS = {
    'v3.0': {
        'values': {
            'kphio': 0.09423773,
            'soilm_par_a': 0.33349283,
            'soilm_par_b': 1.45602286,
            'tau_acclim_tempstress': 10.0,
            'par_shape_tempstress': 0.0
        },
        'calibratable': ['kphio', 'soilm_par_a', 'soilm_par_b'],
        'irrelevant': ['tau_acclim_tempstress', 'par_shape_tempstress']
    },
    'v4.2': {
        'values': {
            'kphio': 0.04998,
            'kphio_par_a': 0.0,
            'kphio_par_b': 1.0,
            'soilm_thetastar': 0.6 * 240,
            'soilm_betao': 0.0,
            'beta_unitcostratio': 146.0,
            'rd_to_vcmax': 0.014,
            'tau_acclim': 30.0,
            'kc_jmax': 0.41
        },
        'calibratable': ['kphio', 'kphio_par_a', 'kphio_par_b',
                         'soilm_thetastar', 'soilm_betao'],
        'irrelevant': []
    }
}

# error model parameter of the likelihood cost,
# never handed to the simulation model
ERR_PARAM = 'err_gpp'


# FLUXNET2015 daily (DD) files
FLX_FILE_PATTERN = 'FLX_{site}_FLUXNET2015_FULLSET_DD_*.csv'
FLX_MISSING = -9999
FLX_VARIABLE_MAP = {
    'gpp': 'GPP_NT_VUT_REF',
    'gpp_unc': 'GPP_NT_VUT_SE'
}
# fraction of measured or good quality gapfilled
# nighttime half-hours used for the partitioning
FLX_QC_NIGHT = 'NEE_VUT_REF_NIGHT_QC'
FLX_QC_DAY = 'NEE_VUT_REF_QC'
