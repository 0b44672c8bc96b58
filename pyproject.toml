[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lqnotice"
version = "1.0.0"
description = "Watch a JSON news feed for notices matching keywords and alert by e-mail and Server Chan push"
requires-python = ">=3.10"
keywords = ["monitor", "notification", "alert", "smtp", "serverchan", "news"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
    "Topic :: Communications :: Email",
    "Topic :: Utilities",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
lqnotice = "lqnotice.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["lqnotice"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
