from setuptools import setup, find_packages

setup(
    name="smartroommate",
    version="0.1.0",
    description="SmartRoommate Backend API",
    author="SmartRoommate Team",
    author_email="team@smartroommate.local",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "fastapi>=0.116.1",
        "uvicorn[standard]>=0.35.0",
        "sqlalchemy[asyncio]>=2.0.42",
        "aiosqlite>=0.21.0",
        "asyncpg>=0.30.0",
        "environs>=14.2.0",
        "python-jose[cryptography]>=3.5.0",
        "pydantic>=2.11.7",
        "email-validator>=2.2.0",
        "dishka>=1.6.0",
        "redis>=5.0.0",
        "bcrypt>=4.1.0",
        "python-multipart>=0.0.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.27.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "smartroommate-api=smartroommate.main:main"
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
