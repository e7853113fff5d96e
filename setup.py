"""Setup script for Komyaku Overlay package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")

setup(
    name="komyaku-overlay",
    version="0.1.0",
    description="Face tracking and character animation overlay for live video and still images",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Komyaku Overlay Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    python_requires=">=3.9",
    install_requires=[
        "opencv-python>=4.9.0",
        "numpy>=1.26.0",
        "pyyaml>=6.0.0",
        "scipy",
    ],
    extras_require={
        "detect": [
            "insightface>=0.7.3",
            "onnxruntime>=1.16.3",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black",
            "flake8",
            "mypy",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
