from setuptools import setup, find_packages

setup(
    name="applehub",
    version="1.0.0",
    packages=find_packages(include=["applehub", "applehub.*"]),
    install_requires=[
        "django>=4.0",
        "djangorestframework",
        "drf-spectacular",
        "djangorestframework-simplejwt",
        "psycopg2-binary",
        "python-decouple",
        "requests",
        "django-cors-headers",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-django",
        ],
    },
    python_requires=">=3.11",
)
