"""Setup script for the JoinMe offline-first repository layer."""

from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).parent


def read_requirements(path: Path) -> tuple[list[str], list[str]]:
    """Split requirements.txt into runtime and test requirements."""
    runtime, test = [], []
    if not path.exists():
        return runtime, test

    for raw in path.read_text(encoding="utf-8").splitlines():
        requirement = raw.split("#", 1)[0].strip()
        if not requirement:
            continue
        (test if requirement.startswith("pytest") else runtime).append(requirement)
    return runtime, test


readme = HERE / "README.md"
install_requires, test_requires = read_requirements(HERE / "requirements.txt")

setup(
    name="joinme",
    version="1.0.0",
    description="Offline-first cached repositories for JoinMe events, groups and series",
    long_description=readme.read_text(encoding="utf-8") if readme.exists() else "",
    long_description_content_type="text/markdown",
    author="JoinMe Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    install_requires=install_requires,
    extras_require={"test": test_requires, "dev": test_requires},
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: AsyncIO",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="offline-first cache repository sqlite async",
    zip_safe=False,
)
