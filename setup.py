# setup.py
from setuptools import setup, find_packages

setup(
    name="pulse_chart",
    version="0.1.0",
    packages=find_packages(include=["pulse_chart", "pulse_chart.*"]),
    py_modules=["run_chart"],
    install_requires=[
        "pandas",
        "numpy",
        "pyqtgraph",
        "PyQt6",
        "python-dotenv",
        "requests",
        "urllib3",
        "pytz",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-qt",
        ],
    },
    entry_points={
        "console_scripts": [
            "pulse-chart=run_chart:main",
        ],
    },
)
