from setuptools import setup, find_packages

setup(
    name="teslajustice",
    version="0.1.0",
    description="Monitors social media for Tesla vandalism reports and groups them into deduplicated cases",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "pydantic>=2.0.0",
        "sqlalchemy>=2.0.0",
        "requests>=2.31.0",
        "python-dateutil>=2.8.0",
        "python-dotenv>=1.0.0",
        "click>=8.1.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "teslajustice=teslajustice.cli:main",
        ],
    },
)
