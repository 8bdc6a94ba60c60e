"""Setup script for recurcal, a recurring calendar event server."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

requirements = [
    "aiohttp>=3.9.0",
    "colorlog>=6.7.0",
    "pydantic>=2.0.0",
    "python-dateutil>=2.8.2",
    "PyYAML>=6.0",
]

test_requirements = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.23.0",
]

setup(
    name="recurcal",
    version="0.1.0",
    description="Recurring calendar events with per-occurrence edits and deletes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="recurcal developers",
    # Package configuration
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
    ],
    keywords="calendar recurring-events scheduling aiohttp async",
    entry_points={
        "console_scripts": [
            "recurcal=recurcal.__main__:main",
        ],
    },
    zip_safe=False,
)
