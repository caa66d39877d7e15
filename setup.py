from setuptools import setup, find_packages

setup(
    name="streamscribe",
    version="0.1.0",
    description="Live microphone transcription over a streaming speech recognition API",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "rich>=12.5.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "streamscribe=streamscribe.main:main",
        ],
    },
)
