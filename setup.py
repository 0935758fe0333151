from setuptools import setup, find_packages

setup(
    name="retail-signage-sync",
    version="0.1.0",
    description="Retail display signage: content publication CMS and display player",
    author="Matt Skillman",
    packages=find_packages(include=["cms", "cms.*", "src", "src.*"], exclude=["cms.tests", "cms.tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "Flask>=3.0",
        "Flask-SQLAlchemy>=3.1",
        "Flask-Migrate>=4.0",
        "SQLAlchemy>=2.0",
        "PyYAML>=6.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
)
