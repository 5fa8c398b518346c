"""Setup script for catscii."""

from setuptools import setup, find_packages

TEST_REQUIRES = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.23.0",
]

setup(
    name="catscii",
    version="0.1.0",
    description="Serves a random cat picture as ASCII art, with tracing and error reporting",
    python_requires=">=3.9",
    packages=find_packages(include=["catscii", "catscii.*"]),
    install_requires=[
        line.strip()
        for line in open("requirements.txt")
        if line.strip() and not line.startswith("#") and not line.startswith("git+")
    ],
    extras_require={
        "test": TEST_REQUIRES,
        "dev": TEST_REQUIRES + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "catscii=catscii.api:main",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Framework :: FastAPI",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
