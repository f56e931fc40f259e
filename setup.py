from setuptools import setup, find_packages

setup(
    name="lspdocker",
    version="0.1.0",
    description="Run LSP language servers in docker containers with host/container path translation",
    packages=find_packages(include=["lspdocker", "lspdocker.*"]),
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0",
        "pydantic>=2.0",
        "tomli>=2.0",
        "tomli-w>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0", "pytest-asyncio>=0.21"],
    },
    entry_points={
        "console_scripts": [
            "lspdocker=lspdocker.cli:cli",
        ],
    },
)
