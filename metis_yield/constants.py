"""Protocol constants used by the yield formulas.

Each one is a default; the matching setting in ``metis_yield.config`` overrides it.
"""

# Netswap LP fee taken on every swap (0.25%)
NETSWAP_FEE_RATE = 0.0025

# Pairs at or below this USD reserve are ignored
NETSWAP_MIN_RESERVE_USD = 1000.0

# Enki rewards: a distribution's vault share is annualized as rate * 365 * factor.
# The factor of 10 is carried over from the reward dispatcher's cycle assumption.
ENKI_ANNUALIZATION_FACTOR = 10.0
ENKI_TOKEN_SYMBOL = "eMetis"
ENKI_TOKEN_DECIMALS = 18

# Daily compounding base for APR -> APY conversion
COMPOUNDING_PERIODS = 365
DAYS_PER_YEAR = 365

SECONDS_PER_DAY = 86400

# ERC20 totalSupply() selector
TOTAL_SUPPLY_SELECTOR = "0x18160ddd"

# Compounded APYs are capped here so an overflowing APR still ranks at the top
MAX_APY = 1e12
