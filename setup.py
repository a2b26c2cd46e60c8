"""Install members package."""

from setuptools import setup, find_packages

setup(
    name='members',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    package_data={'members': ['templates/members/*.html']},
    include_package_data=True,
    install_requires=[
        "flask",
        "flask-sqlalchemy>=3.0",
        "sqlalchemy",
        "pyjwt>=2.0",
        "pytz",
        "retry",
        "wtforms",
        "email-validator",
        "click",
        "python-json-logger"
    ],
    extras_require={
        'test': ['pytest']
    },
    zip_safe=False
)
