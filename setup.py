"""setuptools setup for Tabletop.

Install for development:
    pip install -e ".[test]"
"""

from setuptools import setup

setup(
    name="Tabletop",
    version="0.1.0",
    description="Timer lists with counters and automations",
    python_requires=">=3.10",
    packages=[
        "tabletop",
        "tabletop.audio",
        "tabletop.automation",
        "tabletop.database",
        "tabletop.timer",
    ],
    install_requires=[
        "PyQt6>=6.4",
        "SQLAlchemy>=2.0",
        "numpy>=1.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": ["tabletop=tabletop.__main__:main"],
    },
)
