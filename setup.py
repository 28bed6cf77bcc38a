from setuptools import setup, find_packages

setup(
    name="mentorly",
    version="0.1.0",
    packages=find_packages(include=["mentorly", "mentorly.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
