"""
Knowledge Core - semantic knowledge-base library
"""
from setuptools import setup, find_packages

setup(
    name="knowledge-core",
    version="1.0.0",
    description="Chunking, embedding, similarity scoring and storage for a semantic knowledge base",
    author="Knowledge Core Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "requests>=2.31.0",
        "numpy>=1.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
        ],
    },
)
