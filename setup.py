"""
Teamwork setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="teamwork",
    version="1.0.0",
    description="Teamwork — team task, document, and contribution tracker",
    packages=find_packages(include=["teamwork", "teamwork.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "teamwork=teamwork.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2.5",
        "redis>=5.0",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
