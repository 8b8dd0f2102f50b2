from setuptools import setup, find_packages

setup(
    name="facility-risk",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "alembic", "alembic.*", "scripts"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "alembic",
        "psycopg2-binary",
        "python-dotenv",
        "python-dateutil",
        "numpy",
        "pydantic>=2",
        "pydantic-settings",
        "pytest",
        "httpx",
    ],
    entry_points={
        "console_scripts": [
            "recalculate-focus-areas=facility_risk.cli:main",
        ],
    },
)
