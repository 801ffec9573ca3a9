# Sphinx configuration for the AI Roadmap Generator API reference.
# Build with: sphinx-build -b html docs docs/_build/html

import sys
import tomllib
from pathlib import Path

_ROOT = Path(__file__).parent.parent

# autodoc imports the app package from the project root
sys.path.insert(0, str(_ROOT))

project = "AI Roadmap Generator"
author = "AI Roadmap Generator contributors"
copyright = f"2026, {author}"

with open(_ROOT / "pyproject.toml", "rb") as f:
    release = tomllib.load(f)["project"]["version"]
version = release

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",  # the modules use NumPy-style sections
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "sphinx_autodoc_typehints",
    "myst_parser",  # index.md and api.md
]

exclude_patterns = ["_build"]
root_doc = "index"

autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
    "undoc-members": True,
}
autodoc_typehints = "description"

napoleon_google_docstring = False
napoleon_numpy_docstring = True

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
}

html_theme = "furo"
html_static_path = ["_static"]
html_title = f"AI Roadmap Generator {release}"
html_theme_options = {
    "light_css_variables": {
        "color-brand-primary": "#334e68",
        "color-brand-content": "#334e68",
    },
    "dark_css_variables": {
        "color-brand-primary": "#9fb3c8",
        "color-brand-content": "#9fb3c8",
    },
}
