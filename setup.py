from setuptools import setup, find_packages

setup(
    name="sweep",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # System
        'python-dotenv',
        'psutil>=5.9.0',
        
        # Data Handling
        'numpy',
        'pandas',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'pytest-mock>=3.10.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'sweep = sweep.cli.sweep:main',
        ],
    },
    include_package_data=True,
    description="SWEEP Indicator Parameter Search",
    python_requires=">=3.8",
)
