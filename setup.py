from setuptools import setup, find_packages

setup(
    name="geo-batch-placement",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "flask>=2.0.0",
        "flask-cors>=3.0.10",
        "python-dotenv>=0.19.0",
        "prometheus-client>=0.14.0",
        "tabulate>=0.8.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "geoplacement-api=geoplacement.api.app:main",
            "geoplacement-admin=geoplacement.scripts.placement_admin:main",
        ],
    },
    python_requires=">=3.8",
)
