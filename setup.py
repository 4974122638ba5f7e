from setuptools import setup, find_packages

setup(
    name="crash-tools",
    version="0.1.0",
    description="Vehicle accident detection from accelerometer, gyroscope and speed telemetry",
    packages=find_packages(),
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0,<3.0",
        "matplotlib>=3.7,<4.0",
        "tqdm>=4.65",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "crash-analyze=crash_tools.analyze_telemetry:main",
            "crash-evaluate=crash_tools.accident_detector.evaluate:main",
        ],
    },
)
