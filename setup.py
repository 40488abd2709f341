"""
Setup file for the Finance Backtest package.
Allows installation in editable mode: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name="finance_backtest",
    version="0.1.0",
    description="Strategy backtesting engine with statistics and risk analytics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "numpy",
        "scipy",
        "pyyaml",
        "python-dotenv",
        "joblib",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
