from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="adtte",
    version="1.0.0",
    author="Python port of the admiral time-to-event derivations",
    author_email="",
    description="ADaM Time-to-Event Parameter Derivation for Clinical Trials",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/pharmaverse/admiral",
    packages=find_packages(include=["adtte", "adtte.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.5.0",
        "scipy>=1.7.0",
        "matplotlib>=3.4.0",
        "logdecorator>=2.4",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "adtte=adtte.cli:main",
        ],
    },
)
