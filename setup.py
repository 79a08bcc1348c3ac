"""Setup script for the clinic event mesh services following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

SERVICE_PACKAGES = ("shared", "doctor_service", "appointment_service", "admin_service", "patient_service")

setup(
    name="clinic-event-mesh",
    version="1.0.0",
    description="Clinic services kept consistent through domain events on Redis Streams",
    author="Clinic Platform Team",
    package_dir={"": "src"},
    packages=[
        package
        for package in find_namespace_packages(where="src")
        if package.split(".")[0] in SERVICE_PACKAGES
    ],
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "redis>=4.2",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis>=2.20",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "doctor-projections=doctor_service.entrypoints.redis_eventconsumer:main",
            "appointment-projections=appointment_service.entrypoints.redis_eventconsumer:main",
            "admin-projections=admin_service.entrypoints.redis_eventconsumer:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "Programming Language :: Python :: 3.11",
    ],
)
