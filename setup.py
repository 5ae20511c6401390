from setuptools import setup, find_namespace_packages

setup(
    name="assetRepository",
    version="0.3.0",
    description="Versioned knowledge asset repository with representation negotiation and dependency bundling",
    author="Your Name",
    author_email="you@example.com",
    packages=find_namespace_packages(include=["assetRepository*", "service*"]),
    install_requires=[
        "click>=8.0",
        "requests>=2.31.0",
        "fastapi>=0.100.0",
        "pydantic>=2.0",
        "rdflib>=6.0",
        "PyYAML>=6.0",
        "tabulate>=0.8.9",
        "tenacity>=8.0",
        "uvicorn>=0.22",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-socket>=0.6",
            "requests-mock>=1.10",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": ["assetRepository=assetRepository.cli:main"],
    },
    license="MIT",
)
