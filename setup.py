"""Set-up file for GeoReact for installations using ``pip install .``"""
from setuptools import find_packages, setup


with open("requirements.txt") as f:
    required = f.read().splitlines()


setup(
    name="georeact",
    version="0.3.0",
    license="GPL",
    keywords=["geochemistry chemical equilibrium kinetics reactive transport"],
    install_requires=required,
    extras_require={"testing": ["pytest>=7"]},
    description="Chemical equilibrium and kinetics of geochemical systems",
    platforms=["Linux", "Windows", "Mac OS-X"],
    package_data={"georeact": ["py.typed"]},
    packages=find_packages("src"),
    package_dir={"": "src"},
    zip_safe=False,
)
