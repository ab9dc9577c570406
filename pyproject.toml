[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brio"
version = "0.1.0"
description = "Agent orchestration kernel: task supervision, service mesh routing, scoped SQL state, sandboxed file sessions and live patch broadcasting."
requires-python = ">=3.10"
keywords = [
    "agents",
    "orchestration",
    "supervisor",
    "service-mesh",
    "llm",
    "sandbox",
    "websocket",
    "json-patch",
]
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
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "aiohttp>=3.9",
    "httpx>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["brio"]

[tool.hatch.build.targets.sdist]
include = ["brio", "tests", "pyproject.toml"]

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
