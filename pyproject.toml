[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kuadrantpolicy"
version = "0.1.0"
description = "Gateway API route selection, policy validation and translation into Istio rules and AuthConfig conditions"
requires-python = ">=3.10"
dependencies = []
keywords = ["gateway-api", "kubernetes", "authorization", "rate-limiting", "istio", "policy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kuadrantpolicy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
