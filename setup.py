from setuptools import setup, find_packages

setup(
    name="ledger_reconcile",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    entry_points={
        "console_scripts": [
            "ledger-reconcile=ledger_reconcile.cli:main",
        ],
    },
    author="Price Hatfield",
    description="Reconciliation, recurring bill matching and balance projection for a transaction ledger",
    python_requires=">=3.8",
)
