# The MIT License (MIT)
#
# Copyright (c) 2025 Samuel Bear Powell
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import sys, argparse, re, warnings, functools
import datetime
import decimal
import typing
import numpy as np
import mpmath

VERSION = '1.0.0'

# significant digits of every decimal stage, the width of the spreadsheet's decimal type
PRECISION = 28
# extra digits carried through the trig functions before rounding back
_TRIG_GUARD = 10

# standard refraction (~34') plus the solar radius, in degrees
DEFAULT_REFRACTION = '0.833'

D = decimal.Decimal

_CONTEXT = decimal.Context(prec=PRECISION, rounding=decimal.ROUND_HALF_EVEN)
_PI = D('3.14159265358979323846264338327950288419716939937510')

def _to_decimal(x):
    '''read x as a Decimal, floats through their shortest repr rather than their binary expansion'''
    if isinstance(x, Angle):
        return x.degrees
    if isinstance(x, D):
        d = x
    elif isinstance(x, (bool, np.bool_)):
        raise TypeError(f'Cannot use {x!r} as a decimal number')
    elif isinstance(x, (int, np.integer)):
        d = D(int(x))
    elif isinstance(x, (float, np.floating)):
        d = D(repr(float(x)))
    elif isinstance(x, str):
        try:
            d = D(x.strip())
        except decimal.InvalidOperation as e:
            raise ValueError(f'Could not parse {x!r} as a decimal number') from e
    else:
        raise TypeError(f'Cannot use {type(x).__name__} as a decimal number')
    if not d.is_finite():
        raise ValueError(f'{x!r} is not a finite number')
    return d

_arg_parser = argparse.ArgumentParser(prog='solartimes',description='Compute sunrise, sunset and solar position for a date and location')
_arg_parser.add_argument('--version',action='version',version=f'%(prog)s {VERSION}')
_arg_parser.add_argument('--citation',action='store_true',help='Print citation information')
_arg_parser.add_argument('-t','--time',type=str,default='now',help='"now" or date and time in ISO8601 format')
_arg_parser.add_argument('-lat','--latitude',type=_to_decimal,default=D('51.48'),help='observer latitude, in decimal degrees, positive for north')
_arg_parser.add_argument('-lon','--longitude',type=_to_decimal,default=D('0.0'),help='observer longitude, in decimal degrees, positive for east')
_arg_parser.add_argument('-z','--utc_offset',type=_to_decimal,default=None,help='UTC offset in hours, overrides any offset given with --time')
_arg_parser.add_argument('-a','--atmos_refract',type=_to_decimal,default=D(DEFAULT_REFRACTION),help='atmospheric refraction at sunrise and sunset, in degrees')
_arg_parser.add_argument('--csv',action='store_true',help='Comma separated values (time,lat,lon,sunrise,noon,sunset,daylight,dec,eot,az,el)')

def main(args=None, **kwargs):
    """Run solartimes command-line tool.

    If run without arguments, uses sys.argv, otherwise arguments may be
    specified by a list of strings to be parsed, e.g.:
        main(['--time','now'])
    or as keyword arguments:
        main(time='now')
    or as an argparse.Namespace object (as produced by argparse.ArgumentParser)

    Parameters
    ----------
    args : list of str or argparse.Namespace, optional
        Command-line arguments. sys.argv is used if not provided.
    version : bool
        If true, print the version information and quit
    citation : bool
        If true, print citation information and quit
    time : str
        "now" or date and time in ISO8601 format
    latitude : Decimal
        observer latitude in decimal degrees, positive for north
    longitude : Decimal
        observer longitude in decimal degrees, positive for east
    utc_offset : Decimal or None
        UTC offset of the local clock, in hours
    atmos_refract : Decimal
        atmospheric refraction at sunrise and sunset, in degrees
    csv : bool
        If True, output as comma separated values

    Returns
    -------
    status : int
        0 on success, 1 if the inputs are out of range or the sun does not rise or set
    """
    if args is None and not kwargs:
        args = _arg_parser.parse_args()
    elif args is None:
        args = _arg_parser.parse_args([])
    elif isinstance(args,(list,tuple)):
        args = _arg_parser.parse_args(args)

    for kw in kwargs:
        setattr(args,kw,kwargs[kw])

    if args.citation:
        print("Algorithm:")
        print("  Jean Meeus, \"Astronomical Algorithms\", 2nd edition, Willmann-Bell, 1998")
        print("  NOAA Global Monitoring Laboratory, \"NOAA Solar Calculations\" spreadsheet,")
        print("  https://gml.noaa.gov/grad/solcalc/calcdetails.html")
        return 0

    try:
        st = SolarTimes(args.time, args.latitude, args.longitude, utc_offset=args.utc_offset,
                        atmospheric_refraction=args.atmos_refract)
        rise, noon, sset = st.sunrise, st.solar_noon, st.sunset
    except (OutOfRangeError, NoSunriseSunsetError) as e:
        print(f'solartimes: {e}', file=sys.stderr)
        return 1

    t = st.for_date.isoformat()
    lat, lon = st.latitude, st.longitude
    daylight = st.daylight_duration
    dec, eot = st.solar_declination, st.equation_of_time
    az, el = st.solar_azimuth, st.solar_elevation
    if args.csv:
        #machine readable
        print(f'{t}, {lat}, {lon}, {rise.isoformat()}, {noon.isoformat()}, {sset.isoformat()}, {daylight:0.6f}, {dec:0.6f}, {eot:0.6f}, {az:0.6f}, {el:0.6f}')
    else:
        print(f"Computing sun times at T = {t}")
        print(f"Lat, Lon = {lat} deg, {lon} deg")
        print(f"Refraction = {st.atmospheric_refraction} deg")
        print("Results:")
        print(f"Sunrise, solar noon, sunset = {_clock(rise)}, {_clock(noon)}, {_clock(sset)}")
        print(f"Daylight = {daylight:0.3f} min")
        print(f"Declination, equation of time = {dec:0.6f} deg, {eot:0.6f} min")
        print(f"Azimuth, elevation = {az:0.6f} deg, {el:0.6f} deg")

    return 0

def _clock(dt):
    return dt.isoformat(sep=' ', timespec='seconds')

## Errors

class OutOfRangeError(ValueError):
    """A latitude, longitude or UTC offset outside its legal range"""
    field = 'value'
    def __init__(self, value, low, high):
        self.value, self.low, self.high = value, low, high
        super().__init__(f'The value for {self.field} must be between {low} and {high}, got {value}')

class LatitudeRangeError(OutOfRangeError):
    field = 'latitude'

class LongitudeRangeError(OutOfRangeError):
    field = 'longitude'

class UtcOffsetRangeError(OutOfRangeError):
    field = 'utc_offset'

class LocationNotSetError(AttributeError):
    """Raised when a derived value needs a latitude or longitude that was never assigned"""

class NoSunriseSunsetError(ValueError):
    """The sunrise hour angle is undefined: the sun stays above (polar day) or below (polar night) the horizon all day.

    Attributes
    ----------
    argument : Decimal
        the cosine of the hour angle, outside [-1, 1]
    latitude, declination : Angle
    polar_day : bool
        True if the sun never sets, False if it never rises
    """
    polar_day = None
    _summary = 'The sun neither rises nor sets'
    def __init__(self, argument, latitude, declination):
        self.argument, self.latitude, self.declination = argument, latitude, declination
        super().__init__(f'{self._summary} at latitude {latitude} (solar declination {declination}): '
                         f'the sunrise hour angle cosine {argument:0.6f} is outside [-1, 1]')

class PolarDayError(NoSunriseSunsetError):
    polar_day = True
    _summary = 'The sun does not set'

class PolarNightError(NoSunriseSunsetError):
    polar_day = False
    _summary = 'The sun does not rise'

## Decimal arithmetic

def _precise(f):
    '''evaluate f inside the module's decimal context, whatever the caller's context is'''
    @functools.wraps(f)
    def wrapper(*args, **kw):
        with decimal.localcontext(_CONTEXT):
            return f(*args, **kw)
    return wrapper

@_precise
def decimal_mod(value, modulus):
    """Floored modulo without floating point

    Matches the spreadsheet MOD: value - modulus*floor(value/modulus), so the
    result has the sign of the modulus (it is never negative for a positive modulus).

    Parameters
    ----------
    value, modulus : Decimal, int, str, float or Angle

    Returns
    -------
    r : Decimal
        in [0, modulus) for positive modulus
    """
    value, modulus = _to_decimal(value), _to_decimal(modulus)
    r = value - modulus*(value/modulus).to_integral_value(rounding=decimal.ROUND_FLOOR)
    #the rounded quotient can land on the wrong side of an integer
    if modulus > 0:
        if r < 0: r += modulus
        if r >= modulus: r -= modulus
    else:
        if r > 0: r += modulus
        if r <= modulus: r -= modulus
    return r

# trig functions on radians held as Decimal, evaluated by mpmath with guard digits.
# _MP is a private context: mpmath.mp and workdps are process-wide, and its
# precision never changes after this line.
_MP = mpmath.MPContext()
_MP.dps = PRECISION + _TRIG_GUARD

def _trig(f):
    def g(*args):
        y = f(*(_MP.mpf(str(x)) for x in args))
        return _CONTEXT.plus(D(_MP.nstr(y, PRECISION + _TRIG_GUARD)))
    return g

def _checked_arc(f):
    def g(x):
        if abs(x) > 1:
            raise ValueError(f'math domain error: {x} is outside [-1, 1]')
        return f(x)
    return g

_sin = _trig(_MP.sin)
_cos = _trig(_MP.cos)
_tan = _trig(_MP.tan)
_asin = _checked_arc(_trig(_MP.asin))
_acos = _checked_arc(_trig(_MP.acos))
_atan2 = _trig(_MP.atan2)

## Angles

@functools.total_ordering
class Angle:
    """An angle held as decimal degrees

    Radians are derived when asked for and never stored. Arithmetic and
    comparisons work on the degree value, and plain numbers on either side are
    read as degrees. Angles are never wrapped into [0, 360) implicitly: use
    normalized() for that.

    Parameters
    ----------
    degrees : Decimal, int, str, float or Angle
        floats are read through their shortest repr, so Angle(0.833) is exactly 0.833
    """
    __slots__ = ('_degrees',)

    def __init__(self, degrees=0):
        object.__setattr__(self, '_degrees', _to_decimal(degrees))

    def __setattr__(self, name, value):
        raise AttributeError('Angle is immutable')

    def __reduce__(self):
        return (Angle, (str(self._degrees),))

    @classmethod
    def from_degrees(cls, degrees):
        return cls(degrees)

    @classmethod
    def from_radians(cls, radians):
        return cls(_CONTEXT.divide(_CONTEXT.multiply(_to_decimal(radians), 180), _PI))

    @property
    def degrees(self):
        return self._degrees

    def to_degrees(self):
        return self._degrees

    def to_radians(self):
        return _CONTEXT.divide(_CONTEXT.multiply(self._degrees, _PI), 180)

    def normalized(self):
        """The same direction, in [0, 360)"""
        return Angle(decimal_mod(self._degrees, 360))

    def __add__(self, other):
        try:
            return Angle(_CONTEXT.add(self._degrees, _to_decimal(other)))
        except TypeError:
            return NotImplemented

    __radd__ = __add__

    def __sub__(self, other):
        try:
            return Angle(_CONTEXT.subtract(self._degrees, _to_decimal(other)))
        except TypeError:
            return NotImplemented

    def __rsub__(self, other):
        try:
            return Angle(_CONTEXT.subtract(_to_decimal(other), self._degrees))
        except TypeError:
            return NotImplemented

    def __mul__(self, scale):
        #scalar multiples only
        if isinstance(scale, Angle):
            return NotImplemented
        try:
            return Angle(_CONTEXT.multiply(self._degrees, _to_decimal(scale)))
        except TypeError:
            return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, scale):
        if isinstance(scale, Angle):
            return NotImplemented
        try:
            return Angle(_CONTEXT.divide(self._degrees, _to_decimal(scale)))
        except TypeError:
            return NotImplemented

    def __neg__(self):
        return Angle(-self._degrees)

    def __pos__(self):
        return self

    def __abs__(self):
        return Angle(abs(self._degrees))

    def __eq__(self, other):
        try:
            return self._degrees == _to_decimal(other)
        except (TypeError, ValueError):
            return NotImplemented

    def __lt__(self, other):
        try:
            return self._degrees < _to_decimal(other)
        except (TypeError, ValueError):
            return NotImplemented

    def __hash__(self):
        return hash(self._degrees)

    def __float__(self):
        return float(self._degrees)

    def __format__(self, spec):
        return format(self._degrees, spec)

    def __str__(self):
        return f'{self._degrees}\N{DEGREE SIGN}'

    def __repr__(self):
        return f"Angle('{self._degrees}')"

## Dates and times
# The reference spreadsheet numbers days the OLE automation way: day 0 is
# 1899-12-30 and the fractional part is the time of day. The Julian day
# constant 2415018.5 below is the Julian day of that epoch, so the day count
# has to match exactly. Unlike OLE we count continuously before the epoch
# (-0.25 is 1899-12-29 18:00) because the Julian day must stay linear.

_OLE_EPOCH = datetime.datetime(1899, 12, 30)
_US_PER_DAY = 86400000000
_US_PER_HOUR = 3600000000

def _naive_datetime(dt):
    '''wall clock time of dt, without tzinfo'''
    if isinstance(dt, datetime.datetime):
        return dt.replace(tzinfo=None)
    if isinstance(dt, datetime.date):
        return datetime.datetime.combine(dt, datetime.time())
    raise TypeError(f'Expected datetime.datetime or datetime.date, got {type(dt).__name__}')

@_precise
def to_serial_date(dt):
    """Convert the wall clock date and time of dt to a spreadsheet serial day number

    Parameters
    ----------
    dt : datetime.datetime or datetime.date
        any tzinfo is ignored, the local date and time are used as they read

    Returns
    -------
    serial : Decimal
        days since 1899-12-30 00:00, with the time of day as the fraction
    """
    delta = _naive_datetime(dt) - _OLE_EPOCH
    us = (delta.days*86400 + delta.seconds)*1000000 + delta.microseconds
    return D(us)/_US_PER_DAY

@_precise
def from_serial_date(serial):
    """Convert a serial day number back to a naive datetime, rounded to the microsecond"""
    us = (_to_decimal(serial)*_US_PER_DAY).to_integral_value(rounding=decimal.ROUND_HALF_EVEN)
    return _OLE_EPOCH + datetime.timedelta(microseconds=int(us))

def time_past_local_midnight(dt):
    """Fraction of the day elapsed on the wall clock of dt, in [0, 1)"""
    return decimal_mod(to_serial_date(dt), 1)

@_precise
def _utc_offset_hours(dt):
    return D(dt.utcoffset()//datetime.timedelta(microseconds=1))/_US_PER_HOUR

_iso8601_re = re.compile(r'(\d{4})-?([01]\d)-?([0-3]\d)(?:[T ]([012]\d):?([0-5]\d)(?::?([0-6]\d(?:\.\d+)?))?)?\s*(Z|([+-]\d{2})(?::?(\d{2}))?)?')
def _string_to_datetime(s):
    '''parse a timestamp string to a datetime.datetime
    strings may be:
     - "now" -- which gets the current local time, with its UTC offset
     - ISO 8601 formatted string, the time and offset are optional
    a string without an offset gives a naive datetime
    '''
    if s == 'now':
        return datetime.datetime.now(datetime.timezone.utc).astimezone()
    m = _iso8601_re.fullmatch(s.strip())
    if not m:
        raise ValueError('Could not parse timestamp string (must be "now" or ISO8601)')
    year,month,day,hour,minute,second,tz,tz_hour,tz_minute = m.groups()
    if hour is None: hour = 0
    if minute is None: minute = 0
    if second is None: second = 0
    second = D(second)
    micro = int((second % 1)*1000000)
    try:
        dt = datetime.datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), micro)
    except ValueError as e:
        raise ValueError(f'Invalid date or time: {s}') from e
    if tz is None:
        return dt
    if tz == 'Z':
        return dt.replace(tzinfo=datetime.timezone.utc)
    tz_hour = int(tz_hour)
    tz_minute = int(tz_minute) if tz_minute is not None else 0
    if tz_minute >= 60:
        raise ValueError(f'Invalid timezone: {tz}')
    offset = datetime.timedelta(hours=abs(tz_hour), minutes=tz_minute)
    if tz.startswith('-'): offset = -offset
    return dt.replace(tzinfo=datetime.timezone(offset))

def _fixed_offset(hours):
    us = (hours*_US_PER_HOUR).to_integral_value()
    return datetime.timezone(datetime.timedelta(microseconds=int(us)))

def validate_utc_offset(hours):
    """Check a UTC offset, in hours, against the +/-14 h span of civil time zones"""
    h = _to_decimal(hours)
    if not -14 <= h <= 14:
        raise UtcOffsetRangeError(h, -14, 14)
    return h

def validate_latitude(value):
    a = Angle(value)
    if not -90 <= a <= 90:
        raise LatitudeRangeError(a.degrees, -90, 90)
    return a

def validate_longitude(value):
    a = Angle(value)
    if not -180 <= a <= 180:
        raise LongitudeRangeError(a.degrees, -180, 180)
    return a

@_precise
def aware_datetime(for_date=None, utc_offset=None):
    """Resolve a date argument to a datetime with a fixed UTC offset

    Parameters
    ----------
    for_date : datetime.datetime, datetime.date, numpy.datetime64, str or None
        None or "now" for the current local time; strings are ISO 8601
    utc_offset : number or None
        hours; if given it replaces any offset of for_date and the wall clock
        time is kept. A naive for_date without utc_offset is read as UTC, with a warning.

    Returns
    -------
    dt : datetime.datetime
        with a datetime.timezone tzinfo
    """
    if for_date is None:
        for_date = 'now'
    if isinstance(for_date, str):
        for_date = _string_to_datetime(for_date)
    elif isinstance(for_date, np.datetime64):
        #datetime64 has no timezone, it is UTC by convention
        for_date = for_date.astype('datetime64[us]').item()
        if utc_offset is None:
            for_date = for_date.replace(tzinfo=datetime.timezone.utc)
    if not isinstance(for_date, datetime.datetime):
        for_date = _naive_datetime(for_date)

    if utc_offset is not None:
        hours = validate_utc_offset(utc_offset)
        return for_date.replace(tzinfo=_fixed_offset(hours))
    if for_date.utcoffset() is None:
        warnings.warn(f'{for_date.isoformat()} has no UTC offset, assuming UTC', stacklevel=3)
        return for_date.replace(tzinfo=datetime.timezone.utc)
    hours = validate_utc_offset(_utc_offset_hours(for_date))
    return for_date.replace(tzinfo=_fixed_offset(hours))

def _local_datetime(for_date, day_fraction):
    '''local midnight of for_date plus a (possibly negative or >1) fraction of a day'''
    midnight = for_date.replace(hour=0, minute=0, second=0, microsecond=0)
    us = _CONTEXT.multiply(day_fraction, _US_PER_DAY).to_integral_value()
    return midnight + datetime.timedelta(microseconds=int(us))

## Solar calculations
# Each stage is a column of the NOAA solar calculation spreadsheet and a pure
# function of the stages before it. The literals are the spreadsheet's, and
# the expressions keep its grouping so results agree to the last digits.

@_precise
def julian_day(serial_date, utc_offset):
    """Julian Day of a local serial date: days since noon UTC, 1 January 4713 BCE

    Parameters
    ----------
    serial_date : Decimal
        local date and time as a spreadsheet serial day number (see to_serial_date)
    utc_offset : Decimal
        hours
    """
    return _to_decimal(serial_date) + D('2415018.5') - _to_decimal(utc_offset)/24

@_precise
def julian_century(julian_day):
    """Julian centuries since J2000.0"""
    return (_to_decimal(julian_day) - 2451545)/36525

@_precise
def sun_geometric_mean_longitude(julian_century):
    """Geometric mean ecliptic longitude of the sun, in [0, 360)"""
    T = _to_decimal(julian_century)
    return Angle(decimal_mod(D('280.46646') + T*(D('36000.76983') + T*D('0.0003032')), 360))

@_precise
def sun_mean_anomaly(julian_century):
    """Mean anomaly of the sun: its position relative to perigee. Not normalized."""
    T = _to_decimal(julian_century)
    return Angle(D('357.52911') + T*(D('35999.05029') - D('0.0001537')*T))

@_precise
def eccentricity_of_earth_orbit(julian_century):
    T = _to_decimal(julian_century)
    return D('0.016708634') - T*(D('0.000042037') + D('0.0000001267')*T)

@_precise
def sun_equation_of_center(julian_century, sun_mean_anomaly):
    """Difference between the sun's true and mean anomaly"""
    T = _to_decimal(julian_century)
    M = Angle(sun_mean_anomaly)
    return Angle(_sin(M.to_radians())*(D('1.914602') - T*(D('0.004817') + D('0.000014')*T))
                 + _sin((M*2).to_radians())*(D('0.019993') - D('0.000101')*T)
                 + _sin((M*3).to_radians())*D('0.000289'))

@_precise
def sun_true_longitude(sun_geometric_mean_longitude, sun_equation_of_center):
    return Angle(sun_geometric_mean_longitude) + sun_equation_of_center

@_precise
def sun_true_anomaly(sun_mean_anomaly, sun_equation_of_center):
    return Angle(sun_mean_anomaly) + sun_equation_of_center

@_precise
def sun_radius_vector(eccentricity_of_earth_orbit, sun_true_anomaly):
    """Earth-sun distance, in AU"""
    e = _to_decimal(eccentricity_of_earth_orbit)
    v = Angle(sun_true_anomaly)
    return (D('1.000001018')*(1 - e*e))/(1 + e*_cos(v.to_radians()))

def _omega(T):
    #longitude of the moon's ascending node, for nutation and aberration
    return Angle(D('125.04') - D('1934.136')*T)

@_precise
def sun_apparent_longitude(julian_century, sun_true_longitude):
    """True longitude corrected for nutation and aberration"""
    T = _to_decimal(julian_century)
    return Angle(Angle(sun_true_longitude).degrees - D('0.00569') - D('0.00478')*_sin(_omega(T).to_radians()))

@_precise
def mean_ecliptic_obliquity(julian_century):
    """Inclination of the ecliptic to the celestial equator (Meeus 22.2, 23 deg 26' 21.448")"""
    T = _to_decimal(julian_century)
    return Angle(23 + (26 + (D('21.448') - T*(D('46.815') + T*(D('0.00059') - T*D('0.001813'))))/60)/60)

@_precise
def obliquity_correction(julian_century, mean_ecliptic_obliquity):
    T = _to_decimal(julian_century)
    return Angle(Angle(mean_ecliptic_obliquity).degrees + D('0.00256')*_cos(_omega(T).to_radians()))

@_precise
def sun_right_ascension(obliquity_correction, sun_apparent_longitude):
    """Right ascension of the sun, in [0, 360)"""
    e = Angle(obliquity_correction).to_radians()
    lam = Angle(sun_apparent_longitude).to_radians()
    return Angle.from_radians(_atan2(_cos(e)*_sin(lam), _cos(lam))).normalized()

@_precise
def solar_declination(obliquity_correction, sun_apparent_longitude):
    """Angle of the sun north (positive) or south of the celestial equator"""
    e = Angle(obliquity_correction).to_radians()
    lam = Angle(sun_apparent_longitude).to_radians()
    return Angle.from_radians(_asin(_sin(e)*_sin(lam)))

@_precise
def var_y(obliquity_correction):
    t = _tan((Angle(obliquity_correction)/2).to_radians())
    return t*t

@_precise
def equation_of_time(var_y, eccentricity_of_earth_orbit, sun_geometric_mean_longitude, sun_mean_anomaly):
    """Apparent minus mean solar time, in minutes

    Parameters
    ----------
    var_y : Decimal
    eccentricity_of_earth_orbit : Decimal
    sun_geometric_mean_longitude, sun_mean_anomaly : Angle

    Returns
    -------
    eot : Decimal
        minutes, within about +/-17
    """
    y = _to_decimal(var_y)
    e = _to_decimal(eccentricity_of_earth_orbit)
    L0 = Angle(sun_geometric_mean_longitude).to_radians()
    M = Angle(sun_mean_anomaly)
    Mr = M.to_radians()
    x = (y*_sin(2*L0)
         - 2*e*_sin(Mr)
         + 4*e*y*_sin(Mr)*_cos(2*L0)
         - D('0.5')*y*y*_sin(4*L0)
         - D('1.25')*e*e*_sin((M*2).to_radians()))
    return 4*Angle.from_radians(x).degrees

@_precise
def hour_angle_sunrise(latitude, solar_declination, atmospheric_refraction=DEFAULT_REFRACTION):
    """Hour angle of sunrise: the angle the earth turns between sunrise and solar noon

    Parameters
    ----------
    latitude, solar_declination : Angle
    atmospheric_refraction : Angle, optional
        depression of the sun's center below the horizon at sunrise, default 0.833

    Returns
    -------
    ha : Angle
        in [0, 180]

    Raises
    ------
    PolarDayError, PolarNightError
        if the sun does not cross the horizon on this day
    """
    lat, dec = Angle(latitude), Angle(solar_declination)
    phi, delta = lat.to_radians(), dec.to_radians()
    zenith = Angle(90) + Angle(atmospheric_refraction)
    #cos(latitude) >= 0 on [-90, 90], but the rounded radians of +/-90 land just past pi/2.
    #tan(latitude) is taken as sin/|cos| to match; this is the one departure from the
    #spreadsheet's order of operations, and it changes nothing away from the poles.
    cos_phi = abs(_cos(phi))
    x = _cos(zenith.to_radians())/(cos_phi*_cos(delta)) - (_sin(phi)/cos_phi)*_tan(delta)
    if x < -1:
        raise PolarDayError(x, lat, dec)
    if x > 1:
        raise PolarNightError(x, lat, dec)
    return Angle.from_radians(_acos(x))

@_precise
def solar_noon(longitude, equation_of_time, utc_offset):
    """Local time of the sun's meridian transit, as a fraction of a day after local midnight

    The fraction can fall outside [0, 1) when the longitude is far from the
    meridian of the UTC offset, i.e. noon falls on the previous or next date.
    """
    lon = _to_decimal(longitude)
    return (720 - 4*lon - _to_decimal(equation_of_time) + _to_decimal(utc_offset)*60)/1440

@_precise
def sunrise(solar_noon, hour_angle_sunrise):
    """Local time of sunrise, as a fraction of a day after local midnight"""
    return _to_decimal(solar_noon) - _to_decimal(hour_angle_sunrise)*4/1440

@_precise
def sunset(solar_noon, hour_angle_sunrise):
    """Local time of sunset, as a fraction of a day after local midnight"""
    return _to_decimal(solar_noon) + _to_decimal(hour_angle_sunrise)*4/1440

@_precise
def daylight_duration(hour_angle_sunrise):
    """Minutes between sunrise and sunset"""
    return 8*_to_decimal(hour_angle_sunrise)

@_precise
def true_solar_time(time_past_local_midnight, equation_of_time, longitude, utc_offset):
    """Minutes since the last solar midnight, in [0, 1440)"""
    tpm = _to_decimal(time_past_local_midnight)
    lon = _to_decimal(longitude)
    return decimal_mod(tpm*1440 + _to_decimal(equation_of_time) + 4*lon - 60*_to_decimal(utc_offset), 1440)

@_precise
def hour_angle(true_solar_time):
    """Angle of the sun west of the meridian, in [-180, 180)"""
    return Angle(_to_decimal(true_solar_time)/4 - 180)

@_precise
def solar_elevation(latitude, solar_declination, hour_angle):
    """Geometric elevation of the sun above the horizon, without refraction"""
    phi = Angle(latitude).to_radians()
    delta = Angle(solar_declination).to_radians()
    H = Angle(hour_angle).to_radians()
    s = _sin(phi)*_sin(delta) + _cos(phi)*_cos(delta)*_cos(H)
    #rounding can push the sine a hair past +/-1 with the sun at the zenith or nadir
    s = min(max(s, D(-1)), D(1))
    return Angle.from_radians(_asin(s))

@_precise
def solar_zenith(solar_elevation):
    return Angle(90) - Angle(solar_elevation)

@_precise
def solar_azimuth(latitude, solar_declination, hour_angle):
    """Azimuth of the sun, measured eastward from north, in [0, 360)"""
    phi = Angle(latitude).to_radians()
    delta = Angle(solar_declination).to_radians()
    H = Angle(hour_angle).to_radians()
    #gamma is measured westward from south
    gamma = Angle.from_radians(_atan2(_sin(H), _cos(H)*_sin(phi) - _tan(delta)*_cos(phi)))
    return (gamma + 180).normalized()

## Inputs and results

class SolarInput(typing.NamedTuple):
    '''validated inputs of one calculation (see make_input)'''
    for_date : datetime.datetime
    latitude : Angle
    longitude : Angle
    atmospheric_refraction : Angle

    @property
    def utc_offset(self):
        return _utc_offset_hours(self.for_date)

def make_input(for_date, latitude, longitude, utc_offset=None, atmospheric_refraction=None):
    """Validate and bundle the inputs of a calculation

    Parameters
    ----------
    for_date : datetime.datetime, datetime.date, numpy.datetime64, str or None
        see aware_datetime
    latitude : number or Angle
        decimal degrees in [-90, 90], positive for north of the equator
    longitude : number or Angle
        decimal degrees in [-180, 180], positive for east of Greenwich
    utc_offset : number, optional
        hours in [-14, 14]
    atmospheric_refraction : number or Angle, optional
        degrees, default 0.833

    Raises
    ------
    LatitudeRangeError, LongitudeRangeError, UtcOffsetRangeError
    """
    if atmospheric_refraction is None:
        atmospheric_refraction = DEFAULT_REFRACTION
    return SolarInput(aware_datetime(for_date, utc_offset),
                      validate_latitude(latitude),
                      validate_longitude(longitude),
                      Angle(atmospheric_refraction))

class SolarResult(typing.NamedTuple):
    '''every stage of one calculation; times are aware datetimes in the input's offset'''
    julian_day : decimal.Decimal
    julian_century : decimal.Decimal
    sun_geometric_mean_longitude : Angle
    sun_mean_anomaly : Angle
    eccentricity_of_earth_orbit : decimal.Decimal
    sun_equation_of_center : Angle
    sun_true_longitude : Angle
    sun_true_anomaly : Angle
    sun_radius_vector : decimal.Decimal
    sun_apparent_longitude : Angle
    mean_ecliptic_obliquity : Angle
    obliquity_correction : Angle
    sun_right_ascension : Angle
    solar_declination : Angle
    var_y : decimal.Decimal
    equation_of_time : decimal.Decimal
    hour_angle_sunrise : Angle
    solar_noon : datetime.datetime
    sunrise : datetime.datetime
    sunset : datetime.datetime
    daylight_duration : decimal.Decimal
    time_past_local_midnight : decimal.Decimal
    true_solar_time : decimal.Decimal
    hour_angle : Angle
    solar_elevation : Angle
    solar_zenith : Angle
    solar_azimuth : Angle

@_precise
def solar_result(inputs):
    """Run the whole calculation for validated inputs

    Parameters
    ----------
    inputs : SolarInput

    Returns
    -------
    result : SolarResult

    Raises
    ------
    PolarDayError, PolarNightError
        if the sun does not rise or set on the date; no partial result is returned
    """
    t, lat, lon, refract = inputs
    tz = inputs.utc_offset
    jd = julian_day(to_serial_date(t), tz)
    jc = julian_century(jd)
    L0 = sun_geometric_mean_longitude(jc)
    M = sun_mean_anomaly(jc)
    e = eccentricity_of_earth_orbit(jc)
    C = sun_equation_of_center(jc, M)
    true_lon = sun_true_longitude(L0, C)
    true_anom = sun_true_anomaly(M, C)
    R = sun_radius_vector(e, true_anom)
    lam = sun_apparent_longitude(jc, true_lon)
    eps0 = mean_ecliptic_obliquity(jc)
    eps = obliquity_correction(jc, eps0)
    alpha = sun_right_ascension(eps, lam)
    dec = solar_declination(eps, lam)
    y = var_y(eps)
    eot = equation_of_time(y, e, L0, M)
    ha = hour_angle_sunrise(lat, dec, refract)
    noon = solar_noon(lon, eot, tz)
    tpm = time_past_local_midnight(t)
    tst = true_solar_time(tpm, eot, lon, tz)
    H = hour_angle(tst)
    el = solar_elevation(lat, dec, H)
    return SolarResult(
        julian_day=jd, julian_century=jc,
        sun_geometric_mean_longitude=L0, sun_mean_anomaly=M,
        eccentricity_of_earth_orbit=e, sun_equation_of_center=C,
        sun_true_longitude=true_lon, sun_true_anomaly=true_anom,
        sun_radius_vector=R, sun_apparent_longitude=lam,
        mean_ecliptic_obliquity=eps0, obliquity_correction=eps,
        sun_right_ascension=alpha, solar_declination=dec,
        var_y=y, equation_of_time=eot, hour_angle_sunrise=ha,
        solar_noon=_local_datetime(t, noon),
        sunrise=_local_datetime(t, sunrise(noon, ha)),
        sunset=_local_datetime(t, sunset(noon, ha)),
        daylight_duration=daylight_duration(ha),
        time_past_local_midnight=tpm, true_solar_time=tst,
        hour_angle=H, solar_elevation=el, solar_zenith=solar_zenith(el),
        solar_azimuth=solar_azimuth(lat, dec, H))

def solar_times(for_date, latitude, longitude, *, utc_offset=None, atmospheric_refraction=None):
    """Compute sunrise, sunset and the rest of the solar calculation for one date and place

    Parameters
    ----------
    for_date : datetime.datetime, datetime.date, numpy.datetime64 or str
        local date and time; an aware datetime carries its UTC offset
    latitude, longitude : number or Angle
        decimal degrees, positive for north of the equator and east of Greenwich
    utc_offset : number, optional
        hours, replaces the offset of for_date
    atmospheric_refraction : number or Angle, optional
        degrees, default 0.833

    Returns
    -------
    result : SolarResult
    """
    return solar_result(make_input(for_date, latitude, longitude, utc_offset, atmospheric_refraction))

class SolarTimes:
    """Sunrise, sunset and solar position for a date and a place

    The inputs are mutable and validated as they are assigned. Every other
    attribute is computed from the current inputs when it is read; nothing is
    cached. One instance should not be mutated from several threads.

    Parameters
    ----------
    for_date : datetime.datetime, datetime.date, numpy.datetime64, str or None
        None for now, in the local UTC offset
    *location : (latitude, longitude) or (utc_offset, latitude, longitude)
        positional values after the date, e.g. SolarTimes(date, -5, 40.7128, -74.006)
        or SolarTimes(aware_datetime, 40.7128, -74.006)
    latitude, longitude : number or Angle, optional
        decimal degrees; values that need them raise LocationNotSetError until they are set
    utc_offset : number, optional
        hours, replaces the offset of for_date
    atmospheric_refraction : number or Angle, optional
        degrees, default 0.833
    """

    def __init__(self, for_date=None, *location, latitude=None, longitude=None, utc_offset=None, atmospheric_refraction=DEFAULT_REFRACTION):
        if len(location) == 3:
            if utc_offset is not None:
                raise TypeError('utc_offset given both by position and by keyword')
            utc_offset, *location = location
        if len(location) == 2:
            if latitude is not None or longitude is not None:
                raise TypeError('latitude and longitude given both by position and by keyword')
            latitude, longitude = location
        elif location:
            raise TypeError('SolarTimes takes (for_date, latitude, longitude) or (for_date, utc_offset, latitude, longitude), '
                            f'got {len(location)} positional values after for_date')
        self._latitude = None
        self._longitude = None
        self._for_date = aware_datetime(for_date, utc_offset)
        self.atmospheric_refraction = atmospheric_refraction
        if latitude is not None:
            self.latitude = latitude
        if longitude is not None:
            self.longitude = longitude

    def __repr__(self):
        return (f'SolarTimes({self._for_date.isoformat()!r}, latitude={self._latitude!r}, '
                f'longitude={self._longitude!r}, atmospheric_refraction={self._atmospheric_refraction!r})')

    @property
    def for_date(self):
        return self._for_date

    @for_date.setter
    def for_date(self, value):
        self._for_date = aware_datetime(value)

    @property
    def utc_offset(self):
        """hours"""
        return _utc_offset_hours(self._for_date)

    @property
    def latitude(self):
        return self._latitude

    @latitude.setter
    def latitude(self, value):
        self._latitude = validate_latitude(value)

    @property
    def longitude(self):
        return self._longitude

    @longitude.setter
    def longitude(self, value):
        self._longitude = validate_longitude(value)

    @property
    def atmospheric_refraction(self):
        return self._atmospheric_refraction

    @atmospheric_refraction.setter
    def atmospheric_refraction(self, value):
        if value is None:
            value = DEFAULT_REFRACTION
        self._atmospheric_refraction = Angle(value)

    def _location(self):
        if self._latitude is None or self._longitude is None:
            raise LocationNotSetError('latitude and longitude must be set first')
        return self._latitude, self._longitude

    @property
    def inputs(self):
        lat, lon = self._location()
        return SolarInput(self._for_date, lat, lon, self._atmospheric_refraction)

    @property
    def result(self):
        return solar_result(self.inputs)

    @property
    def time_past_local_midnight(self):
        return time_past_local_midnight(self._for_date)

    @property
    def julian_day(self):
        return julian_day(to_serial_date(self._for_date), self.utc_offset)

    @property
    def julian_century(self):
        return julian_century(self.julian_day)

    @property
    def sun_geometric_mean_longitude(self):
        return sun_geometric_mean_longitude(self.julian_century)

    @property
    def sun_mean_anomaly(self):
        return sun_mean_anomaly(self.julian_century)

    @property
    def eccentricity_of_earth_orbit(self):
        return eccentricity_of_earth_orbit(self.julian_century)

    @property
    def sun_equation_of_center(self):
        return sun_equation_of_center(self.julian_century, self.sun_mean_anomaly)

    @property
    def sun_true_longitude(self):
        return sun_true_longitude(self.sun_geometric_mean_longitude, self.sun_equation_of_center)

    @property
    def sun_true_anomaly(self):
        return sun_true_anomaly(self.sun_mean_anomaly, self.sun_equation_of_center)

    @property
    def sun_radius_vector(self):
        return sun_radius_vector(self.eccentricity_of_earth_orbit, self.sun_true_anomaly)

    @property
    def sun_apparent_longitude(self):
        return sun_apparent_longitude(self.julian_century, self.sun_true_longitude)

    @property
    def mean_ecliptic_obliquity(self):
        return mean_ecliptic_obliquity(self.julian_century)

    @property
    def obliquity_correction(self):
        return obliquity_correction(self.julian_century, self.mean_ecliptic_obliquity)

    @property
    def sun_right_ascension(self):
        return sun_right_ascension(self.obliquity_correction, self.sun_apparent_longitude)

    @property
    def solar_declination(self):
        return solar_declination(self.obliquity_correction, self.sun_apparent_longitude)

    @property
    def var_y(self):
        return var_y(self.obliquity_correction)

    @property
    def equation_of_time(self):
        return equation_of_time(self.var_y, self.eccentricity_of_earth_orbit,
                                self.sun_geometric_mean_longitude, self.sun_mean_anomaly)

    @property
    def hour_angle_sunrise(self):
        lat, _ = self._location()
        return hour_angle_sunrise(lat, self.solar_declination, self._atmospheric_refraction)

    @property
    def solar_noon(self):
        """aware datetime of solar noon, counted from local midnight of for_date"""
        _, lon = self._location()
        return _local_datetime(self._for_date, solar_noon(lon, self.equation_of_time, self.utc_offset))

    def _noon_and_hour_angle(self):
        _, lon = self._location()
        ha = self.hour_angle_sunrise
        return solar_noon(lon, self.equation_of_time, self.utc_offset), ha

    @property
    def sunrise(self):
        return _local_datetime(self._for_date, sunrise(*self._noon_and_hour_angle()))

    @property
    def sunset(self):
        return _local_datetime(self._for_date, sunset(*self._noon_and_hour_angle()))

    @property
    def daylight_duration(self):
        """minutes"""
        return daylight_duration(self.hour_angle_sunrise)

    @property
    def true_solar_time(self):
        """minutes"""
        _, lon = self._location()
        return true_solar_time(self.time_past_local_midnight, self.equation_of_time, lon, self.utc_offset)

    @property
    def hour_angle(self):
        return hour_angle(self.true_solar_time)

    @property
    def solar_elevation(self):
        lat, _ = self._location()
        return solar_elevation(lat, self.solar_declination, self.hour_angle)

    @property
    def solar_zenith(self):
        return solar_zenith(self.solar_elevation)

    @property
    def solar_azimuth(self):
        lat, _ = self._location()
        return solar_azimuth(lat, self.solar_declination, self.hour_angle)

## Daylight tables

_DAYLIGHT_DTYPE = np.dtype([
    ('date', 'datetime64[D]'),
    ('sunrise', float),
    ('solar_noon', float),
    ('sunset', float),
    ('daylight', float),
    ('polar', np.int8)])

def _daylight_row(date, latitude, longitude, utc_offset, atmospheric_refraction):
    '''(date, sunrise, solar_noon, sunset, daylight, polar) for one date, times in minutes past local midnight'''
    inputs = make_input(date, latitude, longitude, utc_offset, atmospheric_refraction)
    t, lat, lon, refract = inputs
    tz = inputs.utc_offset
    jc = julian_century(julian_day(to_serial_date(t), tz))
    L0, M, e = sun_geometric_mean_longitude(jc), sun_mean_anomaly(jc), eccentricity_of_earth_orbit(jc)
    eps = obliquity_correction(jc, mean_ecliptic_obliquity(jc))
    lam = sun_apparent_longitude(jc, sun_true_longitude(L0, sun_equation_of_center(jc, M)))
    dec = solar_declination(eps, lam)
    noon = solar_noon(lon, equation_of_time(var_y(eps), e, L0, M), tz)
    try:
        ha = hour_angle_sunrise(lat, dec, refract)
    except NoSunriseSunsetError as err:
        daylight = 1440.0 if err.polar_day else 0.0
        return (np.datetime64(date, 'D'), np.nan, float(noon*1440), np.nan, daylight, 1 if err.polar_day else -1)
    return (np.datetime64(date, 'D'), float(sunrise(noon, ha)*1440), float(noon*1440),
            float(sunset(noon, ha)*1440), float(daylight_duration(ha)), 0)

def daylight_table(dates, latitude, longitude, utc_offset=0, atmospheric_refraction=None):
    """Sunrise, solar noon, sunset and daylight for many dates at one place

    Parameters
    ----------
    dates : array_like of datetime64, datetime.date or ISO8601 date strings
        calendar dates, the calculation is done at local midnight
    latitude, longitude : number or Angle
        decimal degrees, positive for north of the equator and east of Greenwich
    utc_offset : number, optional
        hours, default 0
    atmospheric_refraction : number or Angle, optional
        degrees, default 0.833

    Returns
    -------
    table : ndarray, structured, shape of dates
        fields: date (datetime64[D]); sunrise, solar_noon, sunset (float minutes
        past local midnight); daylight (float minutes); polar (int8: 0 for a
        normal day, 1 if the sun never sets, -1 if it never rises). On polar rows
        sunrise and sunset are NaN and daylight is 1440 or 0.
    """
    dates = np.asarray(dates, dtype='datetime64[D]')
    table = np.empty(dates.shape, dtype=_DAYLIGHT_DTYPE)
    for i in np.ndindex(dates.shape):
        table[i] = _daylight_row(dates[i].item(), latitude, longitude, utc_offset, atmospheric_refraction)
    return table

if __name__ == '__main__':
    sys.exit(main())
