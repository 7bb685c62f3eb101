#!/usr/bin/env python3
# see https://github.com/karlicoss/pymplate for up-to-date reference

from setuptools import find_packages, setup  # type: ignore

INSTALL_REQUIRES = [
    'click>=8.0'    , # for the CLI, printing colors, decorator-based
    'colorlog'      , # colored logs when attached to a terminal
    'more-itertools', # it's just too useful and very common anyway
    'pytz'          , # grouping visits into days for an arbitrary timezone
    'flask'         , # dashboard, brings jinja2 for templates
    'enlighten'     , # progress bars during backup, only drawn on a terminal
]


def main() -> None:
    pkg = 'onehistory'
    subpackages = find_packages('src', include=(f'{pkg}.*',))
    setup(
        name=pkg,
        version='0.1.0',

        zip_safe=False,

        package_dir={'': 'src'},
        packages=[pkg, *subpackages],
        package_data={
            f'{pkg}.web': [
                'templates/*.html',
                'static/css/*.css',
                'static/js/*.js',
            ],
        },

        description='Consolidates browser history from Chrome, Firefox and Safari into one local database',

        python_requires='>=3.9',
        install_requires=INSTALL_REQUIRES,
        extras_require={
            'testing': [
                'pytest',
                'mypy',
            ],
        },
        entry_points={'console_scripts': ['onehistory=onehistory.__main__:main']},
    )


if __name__ == '__main__':
    main()
