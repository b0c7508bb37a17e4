#!/usr/bin/env python3
"""
Setup script for the MyTeacher backend

Install with:
    pip install -e .

With test dependencies:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

requirements = [
    # Web framework
    "fastapi>=0.110.0",
    "uvicorn[standard]>=0.27.0",
    "python-multipart>=0.0.9",
    # Database
    "sqlalchemy[asyncio]>=2.0.25",
    "aiosqlite>=0.19.0",
    "asyncpg>=0.29.0",
    # Settings and validation
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
    "email-validator>=2.1.0",
    # Auth
    "python-jose[cryptography]>=3.3.0",
    "bcrypt>=4.1.0",
    "google-auth>=2.27.0",
    "requests>=2.31.0",
    # Rate limiting
    "slowapi>=0.1.9",
    "redis>=5.0.0",
    # AI
    "anthropic>=0.18.0",
    "httpx>=0.26.0",
    # Files and documents
    "aiofiles>=23.2.1",
    "reportlab>=4.0.0",
    "pypdf>=4.0.0",
    "python-docx>=1.1.0",
]

setup(
    name="myteacher",
    version="1.0.0",
    description="MyTeacher - IEP, 504 and behavior plan management with compliance tracking",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="MyTeacher Team",
    license="MIT",
    package_dir={"": "backend"},
    packages=find_packages(where="backend", exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "faker>=22.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "myteacher=myteacher.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="special-education iep 504 compliance fastapi",
)
