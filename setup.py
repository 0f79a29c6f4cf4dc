#!/usr/bin/env python3
"""
Setup script for the Voice Chat Loop module.
"""

from setuptools import setup, find_packages

with open("voice_chat_loop/README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="voice-chat-loop",
    version="1.0.0",
    description="A turn-taking voice assistant: Deepgram speech in, Ollama chat, Deepgram speech out",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["voice_chat_loop", "voice_chat_loop.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Speech",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    python_requires=">=3.9",
    install_requires=[
        "sounddevice",
        "ollama>=0.4",
        "pydantic>=2.0.0",
        "python-dotenv",
        "httpx",
        "websockets>=14",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "voice-chat-loop=voice_chat_loop.core:cli",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
