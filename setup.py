#!/usr/bin/env python
""" A repository layer for MongoDB with a portable JSON query language and reference population """

from setuptools import setup, find_packages

setup(
    name='mongorepo',
    version='1.0.0',
    author='MongoRepo contributors',

    license='BSD',
    description=__doc__,
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    keywords=['mongodb', 'motor', 'repository'],

    packages=find_packages(exclude=('tests',)),
    scripts=[],
    entry_points={},

    python_requires='>= 3.8',
    install_requires=[
        'motor >= 2.1',
        'pymongo >= 3.10',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-cov',
            'nox',
        ],
    },
    include_package_data=True,

    platforms='any',
    classifiers=[
        # https://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Framework :: AsyncIO',
        'Topic :: Database',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
