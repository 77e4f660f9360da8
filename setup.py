# SPDX-License-Identifier: Apache-2.0
from setuptools import setup, find_packages

setup(
    name="researchhub",
    version="0.1.0",
    packages=find_packages(include=["researchhub", "researchhub.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlmodel",
        "sqlalchemy>=2.0",
        "pydantic>=2",
        "pydantic-settings",
        "slowapi",
        "python-jose",
    ],
    extras_require={"test": ["pytest", "httpx"]},
    entry_points={"console_scripts": ["researchhub=researchhub.cli:main"]},
)
