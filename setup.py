from setuptools import setup, find_packages

setup(
    name="voiceassistant",
    version="0.1.0",
    description="Always-on voice assistant: remote wake word, streaming speech-to-text and spoken answers",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "pydub>=0.25.1",
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
            "voiceassistant=voiceassistant.main:main",
        ],
    },
)
