# setup.py
from setuptools import setup, find_packages

setup(
    name="lispvm",
    version="0.3.0",
    description="A small Lisp compiled to bytecode and run on a stack virtual machine",
    packages=find_packages(include=["lispvm", "lispvm.*"]),
    package_data={"lispvm": ["prelude/*.lisp"]},
    python_requires=">=3.10",
    extras_require={"test": ["pytest", "hypothesis"]},
    entry_points={"console_scripts": ["lispvm=lispvm.__main__:main"]},
    zip_safe=False,
)
