from setuptools import setup, find_packages

setup(
    name="gcsched",
    version="1.0.0",
    description="Greedy criteria scheduling of task graphs on heterogeneous processors",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        # Core dependencies
        "networkx",
        "numpy",
        "pydantic>=2.0",

        # Plotting
        "pandas",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest>=7.0.0", "pytest-timeout>=2.1.0"],
    },
    entry_points={
        "console_scripts": ["gcsched=gcsched.__main__:main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering",
        "Topic :: System :: Distributed Computing",
    ],
)
