from setuptools import setup, find_packages

setup(
    name="cross-field-lib",
    version="0.1.0",
    description="Cross-field constraint validation with declarative marker bindings",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        'cross_field_lib': ['default-config.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'pyyaml>=6.0',
        'jsonschema>=4.17.0',
        'requests>=2.28.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.10',
)
