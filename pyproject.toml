[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kindtool"
version = "0.6.0"
description = "Building blocks for local Kubernetes clusters whose nodes are containers: cluster config, node helpers, command running and CNI config"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kubernetes", "containers", "docker", "cluster", "cni", "kubeadm"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
kindtool-version = "kindtool.version:main"

[tool.hatch.build.targets.wheel]
packages = ["kindtool"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
