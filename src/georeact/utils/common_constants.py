"""
The module gives access to a set of unified units and conversion constants.

To access the quantities, invoke gr.KEY.

All quantities inside GeoReact are in SI units: temperature in K, pressure in Pa,
amounts in mol, masses in kg and volumes in m^3. The constants below are the factors
to multiply a value with to bring it into SI.

"""

""" Units """
# SI Prefixes
NANO = 1e-9
MICRO = 1e-6
MILLI = 1e-3
CENTI = 1e-2
DECI = 1e-1
KILO = 1e3
MEGA = 1e6
GIGA = 1e9

# Time
SECOND = 1.0
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR
YEAR = 365 * DAY

# Weight
KILOGRAM = 1.0
GRAM = 1e-3 * KILOGRAM

# Amount of substance
MOL = 1.0
MILLIMOL = MILLI * MOL

# Length and volume
METER = 1.0
CENTIMETER = CENTI * METER
MILLIMETER = MILLI * METER
CUBIC_METER = METER**3
CUBIC_CENTIMETER = CENTIMETER**3
LITER = 1e-3 * CUBIC_METER

# Pressure related quantities
PASCAL = 1.0
BAR = 100000 * PASCAL
MEGAPASCAL = MEGA * PASCAL
ATMOSPHERIC_PRESSURE = 101325 * PASCAL

# Energy
JOULE = 1.0
KILOJOULE = KILO * JOULE
CALORIE = 4.184 * JOULE

# Temperature
KELVIN = 1.0


def CELSIUS_to_KELVIN(celsius):
    return celsius + 273.15


def KELVIN_to_CELSIUS(kelvin):
    return kelvin - 273.15
