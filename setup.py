from setuptools import setup, find_packages

setup(
    name="autolab-provisioner",
    version="0.3.0",
    description="Idempotent provisioning and teardown of a single-VPC AWS lab environment.",
    packages=find_packages(include=["autolab", "autolab.*"]),
    include_package_data=True,
    package_data={"autolab": ["templates/*"]},
    python_requires=">=3.9",
    install_requires=[
        "boto3>=1.28",
        "botocore>=1.31",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "rich>=13.0",
        "typer>=0.9",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["autolab=autolab.cli:main"],
    },
)
