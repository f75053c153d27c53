from setuptools import setup, find_packages
import os

install_requires = ["lark", "pydantic>=2", "pygls>=1.1,<2", "lsprotocol"]

# Define optional dependencies for development
extras_require = {"dev": ["pytest"]}

setup(
    name="jenkins-groovy-lsp",
    version="0.1.0",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "jlsp = jlsp.cli:main",
        ],
    },
    include_package_data=True,
    package_data={"jlsp.parser": ["groovy.lark"]},
    description="Go-to-definition and member completion for Jenkins pipeline Groovy scripts.",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
