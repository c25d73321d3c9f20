from setuptools import setup, find_namespace_packages

CORE_DEPS = [
    "fastapi",
    "uvicorn",
    "playwright",
    "requests",
    "python-dotenv",
]

TEST_DEPS = [
    "pytest",
    "responses",
    "httpx",
]

setup(
    name="threadlink",
    version="0.1.0",
    packages=find_namespace_packages(include=["threadlink", "threadlink.*"]),
    package_data={"threadlink.web": ["static/*"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=CORE_DEPS,
    extras_require={
        "test": TEST_DEPS,
    },
    entry_points={
        "console_scripts": [
            "threadlink=threadlink.main:main",
        ],
    },
)
