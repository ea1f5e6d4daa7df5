[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flowinspector"
version = "0.1.0"
description = "Passive network flow inspector: signature-based intrusion detection over pcap files and live traffic"
requires-python = ">=3.10"
dependencies = []
keywords = ["ids", "intrusion-detection", "pcap", "pcapng", "network", "signatures", "monitoring"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
flowinspector = "flowinspector.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["flowinspector"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
