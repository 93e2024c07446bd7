# setup.py
from setuptools import setup, find_packages

setup(
    name="ledgerly",
    version="0.1.0",
    description="A personal income and expense ledger with derived totals and breakdowns",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "pyyaml>=5.3",
        "python-dotenv>=1.0",
        "anyio>=4.0",
        "mcp>=1.2,<2",
        "huggingface_hub>=0.24",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "ledgerly=finance_ledger.cli:main",
            "ledgerly-web=finance_ledger.web:main",
            "ledgerly-mcp=finance_ledger.mcp_server:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
