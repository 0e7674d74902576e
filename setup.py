from setuptools import setup

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="pynodedss",
    version="0.1.0",
    description="Python package for WebRTC signaling through a node-dss polling relay",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="Licensed under the MIT license. See LICENSE file for details",
    packages=["pynodedss"],
    package_dir={"pynodedss": "pynodedss"},
    python_requires=">=3.10",
    install_requires=["aiohttp", "yarl"],
    extras_require={
        "aiortc": ["aiortc"],
        "test": ["pytest", "pytest-asyncio", "aioresponses", "aiortc", "aiohttp<3.14"],
    },
)
