"""Install the gatekeeper package."""

from setuptools import setup, find_packages

setup(
    name='gatekeeper',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask",
        "werkzeug",
        "redis",
        "requests",
        "click",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        'console_scripts': [
            'gatekeeper=gatekeeper.cli:cli',
        ],
    },
    zip_safe=False
)
