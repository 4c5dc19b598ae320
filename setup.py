from setuptools import setup, find_packages

setup(
    name="novel-architect",
    version="0.1.0",
    packages=find_packages(include=["novel_architect", "novel_architect.*"]),
    install_requires=[
        "click>=8.1.7",
        "pydantic>=2.5.3",
        "pyyaml>=6.0.1",
        "rich>=13.7.0",
        "loguru>=0.7.2",
        "google-genai>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "novel-architect=novel_architect.cli:main",
        ],
    },
    python_requires=">=3.9",
)
