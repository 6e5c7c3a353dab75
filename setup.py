"""Setup script for pg-payments."""

from setuptools import setup, find_packages

setup(
    name="pg-payments",
    version="1.0.0",
    description="Card payment orchestration over external PGs with cursor-paginated payment history",
    author="ML Roadmap Bootcamp",
    python_requires=">=3.11",
    packages=find_packages(include=["pg_payments", "pg_payments.*"]),
    install_requires=[
        line.strip()
        for line in open("requirements.txt")
        if line.strip() and not line.startswith("#") and not line.startswith("git+")
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "aiosqlite>=0.19.0",
        ],
        "dev": [
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Financial and Insurance Industry",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
