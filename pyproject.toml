[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "graphextract"
version = "0.1.0"
description = "Scheduled GraphQL data extraction from The Graph subgraph gateway"
requires-python = ">=3.10"
keywords = ["graphql", "the-graph", "subgraph", "extraction", "cron", "etl"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]
dependencies = [
    "httpx",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
graphextract = "graphextract.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["graphextract"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
