from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).parent.absolute()
with (HERE / "README.md").open("rt") as fh:
    LONG_DESCRIPTION = fh.read().strip()

VERSION: dict[str, str] = {}
exec((HERE / "crate_index" / "_version.py").read_text(), VERSION)

REQUIREMENTS: dict[str, list[str]] = {
    "core": [
        "filelock<3.24",
        "packaging",
        "typing_extensions; python_version<'3.12'",
    ],
    "test": [
        "pytest",
        "pytest_asyncio",
    ],
    "dev": [
        "pre-commit",
    ],
}

setup(
    name="crate-index",
    version=VERSION["version"],
    description=(
        "A git-backed crate index, with atomic and recoverable mutations "
        "suitable for use in package registry servers"
    ),
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["crate_index", "crate_index.*"]),
    python_requires="~=3.11",
    package_data={"crate_index": ["py.typed"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Typing :: Typed",
    ],
    install_requires=REQUIREMENTS["core"],
    extras_require={
        **REQUIREMENTS,
        # The "dev" extra is the union of "test" and the explicit development
        # dependencies.
        "dev": [
            req
            for extra in ["dev", "test"]
            for req in REQUIREMENTS.get(extra, [])
        ],
        # The "all" extra is the union of all requirements.
        "all": [req for reqs in REQUIREMENTS.values() for req in reqs],
    },
)
