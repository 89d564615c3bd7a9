"""
HippoGraph Setup Script

Install with: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name='hippograph',
    version='0.1.0',
    description='Knowledge-graph passage retrieval with Personalized PageRank',
    author='HippoGraph Team',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'structlog>=23.1.0',
        'pydantic>=2.5.0',
        'pydantic-settings>=2.1.0',
        'pyyaml>=6.0.1',
        'numpy>=1.26.0',
        'aiohttp>=3.9.0',
    ],
    extras_require={
        'qdrant': [
            'qdrant-client>=1.9.0',
        ],
        'local': [
            'sentence-transformers>=2.2.0',
            'torch>=2.0.0',
        ],
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
        'Topic :: Text Processing :: Indexing',
    ],
)
