from setuptools import setup, find_packages

setup(
    name="pointer_tracking",
    version="0.1.0",
    package_dir={"":"src"},
    packages=find_packages(where="src"),
    install_requires=[
        "opencv-python>=4.5.0",
        "numpy>=1.19.0",
        "requests>=2.25.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    author="Your Name",
    author_email="your.email@example.com",
    description="Color pointer tracking with interactive zones for video pipelines",
    license="MIT",
    python_requires=">=3.8",
)
