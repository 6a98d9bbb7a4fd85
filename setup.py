"""
TaskPulse setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="taskpulse",
    version="1.0.0",
    description="TaskPulse — Analytics metrics aggregation engine",
    packages=find_packages(include=["taskpulse", "taskpulse.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "taskpulse=taskpulse.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
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
