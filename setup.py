"""
Setup script for Digest Agent - news ingestion and topic summarization.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="digest-agent",
    version="1.0.0",
    description="Collects articles from feeds, video channels and mailboxes and summarizes them by topic",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Digest Agent Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        # Database driver
        "asyncpg>=0.29.0",

        # HTTP clients
        "aiohttp>=3.9.0",
        "httpx>=0.25.0",

        # Feed and HTML parsing
        "feedparser>=6.0.10",
        "beautifulsoup4>=4.12.0",

        # Data validation
        "pydantic>=2.5.0",

        # Scheduling
        "apscheduler>=3.10.0,<4.0",

        # Monitoring and observability
        "prometheus-client>=0.19.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "ruff>=0.1.8",
        ],
    },
    entry_points={
        "console_scripts": [
            "digest-agent=digest_agent.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Text Processing :: Linguistic",
    ],
    include_package_data=True,
    zip_safe=False,
)
