from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = f.read().splitlines()

setup(
    name="yupdate",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=required,
    extras_require={"test": ["pytest", "hypothesis"]},
    entry_points={"console_scripts": ["yupdate = yupdate.cli:main"]},
    description="Patch a read-only installation system using overlay mounts",
    python_requires=">=3.10",
)
