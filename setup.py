from setuptools import setup, find_packages

setup(
    name="eden-prime",
    version="0.3.0",
    packages=find_packages(include=["eden", "eden.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy",
        "psycopg2-binary",
        "python-dotenv",
        "pydantic",
        "pydantic-settings",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
