# setup.py
from setuptools import setup, find_packages

setup(
    name="form-schema",               # the *distribution* name on PyPI
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),  # will find form_schema/
    install_requires=["pandas"],      # DataFrame batch processing
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
    description="Declarative validation and transformation of form and API input",
    author="Your Name",
    license="Creative Commons Attribution-NonCommercial-ShareAlike 4.0 International License",
)
