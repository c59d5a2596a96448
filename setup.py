"""setuptools / py2app setup for Multimer.

Install for development:
    pip install -e ".[test]"

Build a macOS .app bundle:
    pip install py2app
    python setup.py py2app
"""

import sys

from setuptools import setup, find_packages

APP = ["main.py"]
DATA_FILES = []
OPTIONS = {
    "argv_emulation": False,
    "iconfile": None,
    "plist": {
        "CFBundleName": "Multimer",
        "CFBundleDisplayName": "Multimer",
        "CFBundleIdentifier": "com.multimer.app",
        "CFBundleVersion": "0.1.0",
        "CFBundleShortVersionString": "0.1.0",
        "NSHighResolutionCapable": True,
        "LSMinimumSystemVersion": "13.0",
        "LSUIElement": True,
    },
}

bundle = {}
if "py2app" in sys.argv:
    bundle = dict(
        app=APP,
        data_files=DATA_FILES,
        options={"py2app": OPTIONS},
        setup_requires=["py2app"],
    )

setup(
    name="Multimer",
    version="0.1.0",
    description="Multiple independent countdown timers that survive restarts",
    packages=find_packages(include=["multimer", "multimer.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6>=6.4",
        "SQLAlchemy>=2.0",
        "numpy>=1.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "gui_scripts": ["multimer = multimer.__main__:main"],
    },
    **bundle,
)
