[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "archetypal"
version = "0.1.0"
description = "Archetype-based storage building blocks for an entity-component-system"
requires-python = ">=3.10"
dependencies = []
keywords = ["ecs", "entity-component-system", "archetype", "gamedev", "data-oriented"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["archetypal"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
