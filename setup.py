from setuptools import setup

setup(
    name="qvscli",
    version="0.0.3",
    packages=["qvs", "qvs.cli", "qvs.lib"],
    install_requires=[
        "Click",
        "PyYAML",
        "lxml",
        "colorama",
        "requests",
        "requests-toolbelt",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "qvscli = qvs.cli.cli:cli",
        ],
    },
)
