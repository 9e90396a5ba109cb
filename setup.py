from setuptools import setup

setup(
    name='solartimes',
    version='1.0.0',
    url='https://github.com/s-bear/sun-position',
    author='Samuel Bear Powell',
    description='Sunrise, sunset and solar position from the NOAA solar calculation spreadsheet, in decimal arithmetic',
    py_modules=['solartimes', 'daylightchart'],
    python_requires='>=3.8',
    install_requires=['numpy >= 1.19.4', 'mpmath >= 1.1'],
    extras_require={
        'chart': ['matplotlib'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['solartimes=solartimes:main'],
    },
)
