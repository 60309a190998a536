from setuptools import setup, find_packages

setup(
    name="zlang",
    version="0.1.0",
    description="zlang — ahead-of-time compiler for the Z language (Z -> C -> native)",
    packages=find_packages(include=["zlang", "zlang.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zc=zlang.cli:main",
        ],
    },
)
