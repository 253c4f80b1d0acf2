"""
Setup configuration for the LSTM time series forecaster.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

# Core dependencies
core_requirements = [
    "pandas>=2.1.0,<3.0.0",
    "numpy>=1.25.0",
    "scipy>=1.11.0",
    "scikit-learn>=1.3.0,<2.0.0",
    "statsmodels>=0.14.0,<1.0.0",
    "loguru>=0.7.0",
]

dev_requirements = [
    "pytest>=7.4.0",
    "black>=23.0.0",
    "isort>=5.12.0",
    "mypy>=1.6.0",
    "flake8>=6.0.0",
]

setup(
    name="lstm-series-forecaster",
    version="1.0.0",
    author="Asset Forecasting Platform",
    author_email="noreply@example.com",
    description="Lagged-window time series forecasting with an LSTM network trained by BFGS",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=core_requirements,
    extras_require={
        "dev": dev_requirements,
        "all": dev_requirements,
    },
    entry_points={
        "console_scripts": [
            "series-forecaster=pipeline.run_pipeline:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
