from setuptools import setup

setup(
    name="lytnit",
    version="1.0.0",
    description="A URL shortener with short, non-sequential base62 link IDs",
    packages=["src"],
    py_modules=["main"],
    python_requires=">=3.11",
    install_requires=[
        "flask>=3.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "hypothesis>=6.92.1",
        ],
    },
)
