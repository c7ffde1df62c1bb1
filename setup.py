#!/usr/bin/env python
from setuptools import setup


setup(
    name="understudy",
    version="1.0.0",
    description="Stubbing engine for function test doubles in Python.",
    license="BSD",
    py_modules=["understudy"],
    python_requires=">=3.6",
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
