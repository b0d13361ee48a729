from setuptools import setup, find_packages
from pathlib import Path

# ---------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------

PROJECT_NAME = "defect-xai"
VERSION = "0.1.0"
DESCRIPTION = (
    "Defect prediction models with LIME and break-down explanations"
)
LICENSE = "MIT"

# ---------------------------------------------------------------------
# Long description (README)
# ---------------------------------------------------------------------

this_dir = Path(__file__).parent
readme_path = this_dir / "README.md"

long_description = (
    readme_path.read_text(encoding="utf-8")
    if readme_path.exists()
    else DESCRIPTION
)

# ---------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------

requirements_path = this_dir / "requirements.txt"
if requirements_path.exists():
    install_requires = [
        line.strip()
        for line in requirements_path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
else:
    install_requires = []

# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

setup(
    name=PROJECT_NAME,
    version=VERSION,
    description=DESCRIPTION,
    long_description=long_description,
    long_description_content_type="text/markdown",
    license=LICENSE,

    packages=find_packages(include=("defect_xai", "defect_xai.*")),
    include_package_data=True,

    install_requires=install_requires,
    extras_require={
        "test": ["pytest>=7.0"],
    },

    python_requires=">=3.10",

    entry_points={
        "console_scripts": [
            "defect-xai=defect_xai.cli:main",
        ]
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Software Development :: Quality Assurance",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    keywords=[
        "defect prediction",
        "explainable ai",
        "lime",
        "break-down",
        "software engineering",
    ],
)
