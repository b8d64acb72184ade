from setuptools import setup, find_packages

# Read requirements
with open("requirements/base.txt") as f:
    base_requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="qa-bdd",
    version="0.1.0",
    author="QA BDD Contributors",
    description="Gherkin parser, tag expressions and scenario execution engine",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.8",
    install_requires=base_requirements,
    extras_require={
        "test": ["pytest>=7.4", "pytest-asyncio>=0.21"],
        "dev": ["pytest>=7.4", "pytest-asyncio>=0.21", "black", "flake8", "mypy"],
    },
)
