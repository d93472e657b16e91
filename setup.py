from setuptools import setup, find_packages

setup(
    name="dirigera-querier",
    version="0.1.0",
    description="Logs IKEA DIRIGERA environment sensor readings and serves them over HTTP",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
        "requests>=2.31.0",
        "urllib3>=1.26",
        "Flask>=2.3",
        "Werkzeug>=2.3",
        "zeroconf>=0.80",
        "ifaddr>=0.2",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "dirigera-querier=src.querier.supervisor:main",
        ]
    },
)
