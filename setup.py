from setuptools import setup, find_packages

setup(
    name="ops-assistant",
    version="1.0.0",
    packages=find_packages(include=["ops_assistant", "ops_assistant.*"]),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "httpx>=0.24",
        "python-dotenv>=1.0",
        "openai>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    python_requires=">=3.9",
)
