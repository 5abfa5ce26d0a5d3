[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "checkoutdb"
version = "0.1.0"
description = "Index library checkout CSV files by record id and year, and serve lookups over named pipes"
requires-python = ">=3.10"
dependencies = []
keywords = ["index", "lookup", "csv", "fifo", "named pipe", "checkouts"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
checkoutdb-indexer = "checkoutdb.indexer:main"
checkoutdb-backend = "checkoutdb.backend:main"
checkoutdb-frontend = "checkoutdb.frontend:main"

[tool.hatch.build.targets.wheel]
packages = ["checkoutdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
