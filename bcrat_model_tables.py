"""
Race-indexed model tables for the BCRAT (Gail model) calculator.

Provides breast cancer incidence rates (lambda1), competing mortality rates
(lambda2), attributable risk complements (1-AR) and logistic regression
coefficients for the 11 race/ethnicity groups supported by the NCI Breast
Cancer Risk Assessment Tool. Values follow the BCRA R package.

Rate vectors cover 14 five-year age groups [20,25), [25,30), ..., [85,90).
Race groups that share a fitted model share the same array object.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional
import logging

import numpy as np

from bcrat_model_utils_errors import BCRATLookupError

logger = logging.getLogger(__name__)


class RaceCode(IntEnum):
    """Race/ethnicity codes used by the model."""
    WHITE = 1
    AFRICAN_AMERICAN = 2
    HISPANIC_US_BORN = 3
    NATIVE_AMERICAN_OTHER = 4
    HISPANIC_FOREIGN_BORN = 5
    CHINESE = 6
    JAPANESE = 7
    FILIPINO = 8
    HAWAIIAN = 9
    OTHER_PACIFIC_ISLANDER = 10
    OTHER_ASIAN = 11


RACE_LABELS: Dict[int, str] = {
    RaceCode.WHITE: 'Non-Hispanic White',
    RaceCode.AFRICAN_AMERICAN: 'African-American',
    RaceCode.HISPANIC_US_BORN: 'Hispanic (US Born)',
    RaceCode.NATIVE_AMERICAN_OTHER: 'Native American/Other',
    RaceCode.HISPANIC_FOREIGN_BORN: 'Hispanic (Foreign Born)',
    RaceCode.CHINESE: 'Chinese-American',
    RaceCode.JAPANESE: 'Japanese-American',
    RaceCode.FILIPINO: 'Filipino-American',
    RaceCode.HAWAIIAN: 'Hawaiian',
    RaceCode.OTHER_PACIFIC_ISLANDER: 'Other Pacific Islander',
    RaceCode.OTHER_ASIAN: 'Other Asian',
}

UNKNOWN_RACE_LABEL = 'Unknown'

HISPANIC_RACES = frozenset({RaceCode.HISPANIC_US_BORN, RaceCode.HISPANIC_FOREIGN_BORN})
ASIAN_RACES = frozenset(range(RaceCode.CHINESE, RaceCode.OTHER_ASIAN + 1))

# Sentinel codes
UNKNOWN = 99
NULLIPAROUS = 98
NOT_APPLICABLE = 99

# Age constants
MIN_AGE = 20
MAX_AGE = 90
AGE_THRESHOLD = 50
YEARS_PER_AGE_GROUP = 5
AGE_GROUPS = list(range(MIN_AGE, MAX_AGE, YEARS_PER_AGE_GROUP))
N_AGE_GROUPS = len(AGE_GROUPS)
N_SINGLE_YEARS = MAX_AGE - MIN_AGE

BETA_COEFFICIENT_NAMES = [
    'N_Biop',   # number of biopsies
    'AgeMen',   # age at menarche
    'AgeFst',   # age at first birth
    'N_Rels',   # number of relatives
    'A50*NB',   # age >= 50 x biopsies
    'AF*NR',    # age at first birth x relatives
]


def _frozen(values) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    array.setflags(write=False)
    return array


# ============================================================================
# LOGISTIC REGRESSION COEFFICIENTS
# ============================================================================

WHITE_BETA = _frozen([
    0.5292641686, 0.0940103059, 0.2186262218,
    0.9583027845, -0.288042483, -0.1908113865,
])

# Age at first birth not in the African-American model
BLACK_BETA = _frozen([
    0.1822121131, 0.2672530336, 0.0,
    0.4757242578, -0.1119411682, 0.0,
])

HISPANIC_US_BETA = _frozen([
    0.0970783641, 0.0, 0.2318368334,
    0.166685441, 0.0, 0.0,
])

HISPANIC_FOREIGN_BETA = _frozen([
    0.4798624017, 0.2593922322, 0.4669246218,
    0.9076679727, 0.0, 0.0,
])

ASIAN_BETA = _frozen([
    0.55263612260619, 0.07499257592975, 0.27638268294593,
    0.79185633720481, 0.0, 0.0,
])

# ============================================================================
# ATTRIBUTABLE RISK COMPLEMENTS (1 - AR) for age < 50, age >= 50
# ============================================================================

WHITE_1_AR = _frozen([0.5788413, 0.5788413])
BLACK_1_AR = _frozen([0.7294988, 0.74397137])
HISPANIC_US_1_AR = _frozen([0.749294788397, 0.778215491668])
HISPANIC_FOREIGN_1_AR = _frozen([0.428864989813, 0.450352338746])
ASIAN_1_AR = _frozen([0.47519806426735, 0.50316401683903])

# ============================================================================
# BREAST CANCER INCIDENCE (lambda1)
# ============================================================================

WHITE_LAMBDA1 = _frozen([
    0.00001, 0.000076, 0.000266, 0.000661, 0.001265, 0.001866, 0.002211,
    0.002721, 0.003348, 0.003923, 0.004178, 0.004439, 0.004421, 0.004109,
])

WHITE_AVG_LAMBDA1 = _frozen([
    0.0000122, 0.0000741, 0.0002297, 0.0005649, 0.0011645, 0.0019525, 0.0026154,
    0.0030279, 0.0036757, 0.0042029, 0.0047308, 0.0049425, 0.0047976, 0.0040106,
])

BLACK_LAMBDA1 = _frozen([
    0.00002696, 0.00011295, 0.00031094, 0.00067639, 0.00119444, 0.00187394, 0.00241504,
    0.00291112, 0.00310127, 0.0036656, 0.00393132, 0.00408951, 0.00396793, 0.00363712,
])

HISPANIC_US_LAMBDA1 = _frozen([
    0.0000166, 0.0000741, 0.000274, 0.0006099, 0.0012225, 0.0019027, 0.0023142,
    0.0028357, 0.0031144, 0.0030794, 0.0033344, 0.0035082, 0.0025308, 0.0020414,
])

HISPANIC_FOREIGN_LAMBDA1 = _frozen([
    0.0000102, 0.0000531, 0.0001578, 0.0003602, 0.0007617, 0.0011599, 0.0014111,
    0.0017245, 0.0020619, 0.0023603, 0.0025575, 0.0028227, 0.0028295, 0.0025868,
])

CHINESE_LAMBDA1 = _frozen([
    0.000004059636, 0.000045944465, 0.000188279352, 0.000492930493, 0.000913603501,
    0.001471537353, 0.001421275482, 0.001970946494, 0.001674745804, 0.001821581075,
    0.001834477198, 0.001919911972, 0.002233371071, 0.002247315779,
])

JAPANESE_LAMBDA1 = _frozen([
    0.000000000001, 0.000099483924, 0.000287041681, 0.000545285759, 0.001152211095,
    0.001859245108, 0.002606291272, 0.003221751682, 0.004006961859, 0.003521715275,
    0.003593038294, 0.003589303081, 0.003538507159, 0.002051572909,
])

FILIPINO_LAMBDA1 = _frozen([
    0.000007500161, 0.000081073945, 0.000227492565, 0.000549786433, 0.001129400541,
    0.001813873795, 0.002223665639, 0.002680309266, 0.00289121923, 0.002534421279,
    0.002457159409, 0.00228661692, 0.001814802825, 0.00175087913,
])

HAWAIIAN_LAMBDA1 = _frozen([
    0.000045080582, 0.000098570724, 0.00033997086, 0.000852591429, 0.001668562761,
    0.002552703284, 0.003321774046, 0.005373001776, 0.005237808549, 0.005581732512,
    0.005677419355, 0.006513409962, 0.003889457523, 0.002949061662,
])

OTHER_PACIFIC_ISLANDER_LAMBDA1 = _frozen([
    0.000000000001, 0.000071525212, 0.000288799028, 0.000602250698, 0.000755579402,
    0.000766406354, 0.001893124938, 0.002365580107, 0.00284393307, 0.002920921732,
    0.002330395655, 0.002036291235, 0.001482683983, 0.001012248203,
])

OTHER_ASIAN_LAMBDA1 = _frozen([
    0.000012355409, 0.000059526456, 0.000184320831, 0.000454677273, 0.000791265338,
    0.001048462801, 0.001372467817, 0.001495473711, 0.001646746198, 0.001478363563,
    0.001216010125, 0.0010676637, 0.001376104012, 0.000661576644,
])

# ============================================================================
# COMPETING MORTALITY (lambda2)
# ============================================================================

WHITE_LAMBDA2 = _frozen([
    0.000493, 0.000531, 0.000625, 0.000825, 0.001307, 0.002181, 0.003655,
    0.005852, 0.009439, 0.015028, 0.023839, 0.038832, 0.066828, 0.144908,
])

WHITE_AVG_LAMBDA2 = _frozen([
    0.0004412, 0.0005254, 0.0006746, 0.0009092, 0.0012534, 0.001957, 0.0032984,
    0.0054622, 0.0091035, 0.0141854, 0.0225935, 0.0361146, 0.0613626, 0.1420663,
])

BLACK_LAMBDA2 = _frozen([
    0.00074354, 0.00101698, 0.00145937, 0.00215933, 0.00315077, 0.00448779, 0.00632281,
    0.00963037, 0.01471818, 0.02116304, 0.03266035, 0.04564087, 0.06835185, 0.13271262,
])

HISPANIC_US_LAMBDA2 = _frozen([
    0.0003561, 0.0004038, 0.0005281, 0.0008875, 0.0013987, 0.0020769, 0.0030912,
    0.004696, 0.007605, 0.0120555, 0.0193805, 0.0288386, 0.0429634, 0.0740349,
])

HISPANIC_FOREIGN_LAMBDA2 = _frozen([
    0.0003129, 0.0002908, 0.0003515, 0.0004943, 0.0007807, 0.001284, 0.0020325,
    0.0034533, 0.0058674, 0.0096888, 0.0154429, 0.0254675, 0.0448037, 0.1125678,
])

CHINESE_LAMBDA2 = _frozen([
    0.000210649076, 0.000192644865, 0.000244435215, 0.000317895949, 0.000473261994,
    0.00080027138, 0.001217480226, 0.002099836508, 0.003436889186, 0.006097405623,
    0.010664526765, 0.020148678452, 0.03799079659, 0.098333900733,
])

JAPANESE_LAMBDA2 = _frozen([
    0.000173593803, 0.000295805882, 0.000228322534, 0.000363242389, 0.000590633044,
    0.001086079485, 0.001859999966, 0.003216600974, 0.004719402141, 0.008535331402,
    0.012433511681, 0.020230197885, 0.037725498348, 0.106149118663,
])

FILIPINO_LAMBDA2 = _frozen([
    0.000229120979, 0.000262988494, 0.00031484409, 0.000394471908, 0.00064762261,
    0.001170202327, 0.001809380379, 0.002614170568, 0.004483330681, 0.007393665092,
    0.012233059675, 0.021127058106, 0.037936954809, 0.085138518334,
])

HAWAIIAN_LAMBDA2 = _frozen([
    0.000563507269, 0.000369640217, 0.001019912579, 0.001234013911, 0.002098344078,
    0.002982934175, 0.005402445702, 0.009591474245, 0.016315472607, 0.020152229069,
    0.02735483871, 0.050446998723, 0.072262026612, 0.145844504021,
])

OTHER_PACIFIC_ISLANDER_LAMBDA2 = _frozen([
    0.000465500812, 0.00060046692, 0.000851057138, 0.001478265376, 0.001931486788,
    0.003866623959, 0.004924932309, 0.008177071806, 0.00863820289, 0.018974658371,
    0.029257567105, 0.038408980974, 0.052869579345, 0.074745721133,
])

OTHER_ASIAN_LAMBDA2 = _frozen([
    0.000212632332, 0.000242170741, 0.000301552711, 0.000369053354, 0.000543002943,
    0.000893862331, 0.001515172239, 0.002574669551, 0.004324370426, 0.007419621918,
    0.01325176513, 0.02229142749, 0.041746550635, 0.087485802065,
])


@dataclass(frozen=True)
class RaceTables:
    """
    Model inputs for one race/ethnicity group.

    Attributes:
        incidence: 14 five-year breast cancer incidence rates (lambda1)
        mortality: 14 five-year competing mortality rates (lambda2)
        attributable_risk_complement: 1-AR for age < 50 and age >= 50
        beta: 6 logistic regression coefficients
        average_incidence: population-average lambda1, where one exists
        average_mortality: population-average lambda2, where one exists
    """
    incidence: np.ndarray
    mortality: np.ndarray
    attributable_risk_complement: np.ndarray
    beta: np.ndarray
    average_incidence: Optional[np.ndarray] = None
    average_mortality: Optional[np.ndarray] = None

    @property
    def has_average_rates(self) -> bool:
        return self.average_incidence is not None and self.average_mortality is not None


_WHITE_TABLES = RaceTables(
    incidence=WHITE_LAMBDA1,
    mortality=WHITE_LAMBDA2,
    attributable_risk_complement=WHITE_1_AR,
    beta=WHITE_BETA,
    average_incidence=WHITE_AVG_LAMBDA1,
    average_mortality=WHITE_AVG_LAMBDA2,
)


def _asian_tables(incidence: np.ndarray, mortality: np.ndarray) -> RaceTables:
    return RaceTables(incidence, mortality, ASIAN_1_AR, ASIAN_BETA)


RACE_TABLES: Dict[int, RaceTables] = {
    RaceCode.WHITE: _WHITE_TABLES,
    RaceCode.AFRICAN_AMERICAN: RaceTables(BLACK_LAMBDA1, BLACK_LAMBDA2, BLACK_1_AR, BLACK_BETA),
    RaceCode.HISPANIC_US_BORN: RaceTables(
        HISPANIC_US_LAMBDA1, HISPANIC_US_LAMBDA2, HISPANIC_US_1_AR, HISPANIC_US_BETA
    ),
    # Native American/Other uses the White model
    RaceCode.NATIVE_AMERICAN_OTHER: _WHITE_TABLES,
    RaceCode.HISPANIC_FOREIGN_BORN: RaceTables(
        HISPANIC_FOREIGN_LAMBDA1, HISPANIC_FOREIGN_LAMBDA2,
        HISPANIC_FOREIGN_1_AR, HISPANIC_FOREIGN_BETA
    ),
    RaceCode.CHINESE: _asian_tables(CHINESE_LAMBDA1, CHINESE_LAMBDA2),
    RaceCode.JAPANESE: _asian_tables(JAPANESE_LAMBDA1, JAPANESE_LAMBDA2),
    RaceCode.FILIPINO: _asian_tables(FILIPINO_LAMBDA1, FILIPINO_LAMBDA2),
    RaceCode.HAWAIIAN: _asian_tables(HAWAIIAN_LAMBDA1, HAWAIIAN_LAMBDA2),
    RaceCode.OTHER_PACIFIC_ISLANDER: _asian_tables(
        OTHER_PACIFIC_ISLANDER_LAMBDA1, OTHER_PACIFIC_ISLANDER_LAMBDA2
    ),
    RaceCode.OTHER_ASIAN: _asian_tables(OTHER_ASIAN_LAMBDA1, OTHER_ASIAN_LAMBDA2),
}


def _race_key(race) -> Optional[int]:
    try:
        key = int(race)
    except (TypeError, ValueError, OverflowError):
        return None
    return key if key == race else None


def get_race_label(race) -> str:
    """Return the display label for a race code, or 'Unknown'."""
    return RACE_LABELS.get(_race_key(race), UNKNOWN_RACE_LABEL)


def get_race_tables(race) -> Optional[RaceTables]:
    """
    Look up the model tables for a race code.

    Args:
        race: Race code (1-11)

    Returns:
        RaceTables for the race, or None if the code has no tables
    """
    return RACE_TABLES.get(_race_key(race))


def get_attributable_risk(race, age: float) -> float:
    """
    Return the 1-AR value for a race at a given age.

    Raises:
        BCRATLookupError: if the race code has no tables
    """
    tables = get_race_tables(race)
    if tables is None:
        raise BCRATLookupError(f"Invalid race code: {race}. Must be between 1 and 11.", race=race)
    complement = tables.attributable_risk_complement
    return float(complement[0] if age < AGE_THRESHOLD else complement[1])
