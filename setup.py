"""
Setup script for ratingmath package.
"""

from setuptools import setup, find_packages

setup(
    name="ratingmath",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",

        # Web server
        "fastapi>=0.70.0",
        "uvicorn>=0.15.0",
        "pydantic>=1.8.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "tests": [
            "pytest>=6.0.0",
            "scipy>=1.7.0",
            "scikit-learn>=1.0.0",
            "httpx>=0.23.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'ratingmath=ratingmath.__main__:main',
        ],
    },
    description="Correlation, clustering and ranking analytics for people x location scores",
    keywords="correlation, clustering, ranking, survey analysis",
    python_requires=">=3.8",
)
