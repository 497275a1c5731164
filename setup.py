#!/usr/bin/env python3
"""
Setup configuration for TuneWrangler
Rename, deduplicate and convert music downloads for a DJ collection
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "python-dotenv>=1.0.0",
    "mutagen>=1.47.0",
    "pydub>=0.25.1",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "Unidecode>=1.3.6",
]

setup(
    name="tunewrangler",
    version="1.0.0",
    author="TuneWrangler Team",
    description="Rename, deduplicate and convert music downloads into a canonical DJ collection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Multimedia :: Sound/Audio :: Conversion",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "tunewrangler=tunewrangler.main:cli",
        ],
    },
    keywords="music rename dj collection duplicates flac aiff cli",
)
