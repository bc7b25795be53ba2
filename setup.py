"""
mdfcodec

"""

from pathlib import Path

from setuptools import find_packages, setup

PROJECT_PATH = Path(__file__).parent


with (PROJECT_PATH / "requirements.txt").open() as f:
    install_requires = [l.strip() for l in f.readlines() if l.strip()]


def _get_version():
    with PROJECT_PATH.joinpath("src", "mdfcodec", "version.py").open() as f:
        line = next(line for line in f if line.startswith("__version__"))

    version = line.partition("=")[2].strip()[1:-1]

    return version


def _get_long_description():
    description = PROJECT_PATH.joinpath("README.md").read_text(encoding="utf-8")

    return description


setup(
    name="mdfcodec",
    version=_get_version(),
    description="ASAM MDF version 4 block and XML metadata codec",
    long_description=_get_long_description(),
    long_description_content_type=r"text/markdown",
    license="LGPLv3+",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    keywords="read write parse asam mdf measurement block xml",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    # $ pip install -e .[test]
    extras_require={
        "test": ["unittest-xml-reporting"],
    },
)
