[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "desktopkit"
version = "0.1.0"
description = "Desktop helpers: freedesktop thumbnail cache and thumbnailer registry, locale parsing and ISO language/territory names"
requires-python = ">=3.10"
keywords = ["thumbnails", "thumbnailer", "locale", "iso-codes", "desktop", "freedesktop"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: X11 Applications :: Gnome",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Desktop Environment :: Gnome",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Software Development :: Internationalization",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["desktopkit"]

[tool.pytest.ini_options]
addopts = "-ra"
