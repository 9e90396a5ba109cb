"""
Created on Wed Jul 26 11:35:26 2023.

################################################################################

Copyright 2023, Samuel B Powell

Redistribution and use in source and binary forms, with or without
modification, are permitted provided that the following conditions are met:

1. Redistributions of source code must retain the above copyright notice, this
list of conditions and the following disclaimer.

2. Redistributions in binary form must reproduce the above copyright notice,
this list of conditions and the following disclaimer in the documentation
and/or other materials provided with the distribution.

3. Neither the name of the copyright holder nor the names of its contributors
may be used to endorse or promote products derived from this software without
specific prior written permission.

THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
POSSIBILITY OF SUCH DAMAGE.
"""

import argparse
import numpy as np
import datetime
import matplotlib.pyplot as plt

import solartimes

def _parse_args(args, **kw):
    p = argparse.ArgumentParser(description='Plot sunrise, solar noon and sunset over a year')
    p.add_argument('-lat', '--latitude',type=float,default=50)
    p.add_argument('-lon','--longitude',type=float,default=0)
    p.add_argument('-y','--year',type=int,default=datetime.datetime.now().year)
    p.add_argument('-z','--timezone',type=float,default=None,help='timezone hour offset. Defaults to round(longitude*12/180)')
    p.add_argument('-a','--atmos_refract',type=float,default=None,help='atmospheric refraction at sunrise and sunset, in degrees')
    p.add_argument('-o','--output',help='Plot file',default='daylight.png')
    args = p.parse_args(args, argparse.Namespace(**kw))
    if args.timezone is None:
        args.timezone = round(args.longitude*12/180)
    return args

def find_solstices(daylight):
    '''indices of the shortest (winter) and longest (summer) days'''
    winter_solstice = np.argmin(daylight)
    summer_solstice = np.argmax(daylight)
    return winter_solstice, summer_solstice

def find_equinoxes(daylight, winter_solstice, summer_solstice):
    #daylight is in minutes, equinoxes are the days closest to 12 hours between the solstices
    hours_err = np.abs(daylight/60 - 12)

    s1, s2 = sorted((winter_solstice,summer_solstice))
    eq1 = s1 + np.argmin(hours_err[s1:s2]) #between solstices s1 & s2
    eq2 = np.argmin(hours_err[:s1]) if s1 > 0 else s2
    eq2_b = s2 + np.argmin(hours_err[s2:])
    if hours_err[eq2_b] < hours_err[eq2]:
        eq2 = eq2_b
    if s1 == winter_solstice:
        spring_equinox, fall_equinox = eq1, eq2
    else:
        spring_equinox, fall_equinox = eq2, eq1
    return spring_equinox, fall_equinox

def daylight_spans(table):
    '''(start, end) of daylight in hours for each row of a daylight table
    polar days span the whole day and polar nights are empty
    '''
    start = table['sunrise']/60
    end = table['sunset']/60
    polar_day = table['polar'] > 0
    polar_night = table['polar'] < 0
    start = np.where(polar_day, 0, np.where(polar_night, 12, start))
    end = np.where(polar_day, 24, np.where(polar_night, 12, end))
    return start, end

def main(args=None, **kw):
    args = _parse_args(args, **kw)

    #one row per local calendar day, dealing with leap years automatically
    days = np.arange(f'{args.year:04}-01-01', f'{args.year+1:04}-01-01', dtype='datetime64[D]')
    table = solartimes.daylight_table(days, args.latitude, args.longitude, args.timezone, args.atmos_refract)

    daylight = table['daylight']
    winter_i, summer_i = find_solstices(daylight)
    spring_i, fall_i = find_equinoxes(daylight, winter_i, summer_i)

    start, end = daylight_spans(table)
    x = days.astype(datetime.datetime)

    fig = plt.figure(dpi=100)
    ax = fig.add_subplot()
    ax.fill_between(x, start, end, color='gold', alpha=0.5, label='daylight')
    ax.plot(x, table['solar_noon']/60, 'k-', label='solar noon')
    ax.set_ylim(0, 24)
    ax.set_yticks(range(0, 25, 3))
    ax.set_ylabel(f'hour (UTC{args.timezone:+g})')
    ax.set_title(f'{args.year} at {args.latitude:g}, {args.longitude:g}')

    #mark the solstices and equinoxes
    for i in (winter_i, spring_i, summer_i, fall_i):
        label = f'{days[i]}\n{daylight[i]/60:0.2f} h'
        ax.axvline(x[i], color='k', linestyle='--', linewidth=0.5)
        ax.annotate(label, (x[i], 23), horizontalalignment='center', verticalalignment='top', fontsize='small')

    ax.legend(loc='lower right')
    fig.autofmt_xdate()
    fig.savefig(args.output,dpi=300)



if __name__ == '__main__':
    main()
