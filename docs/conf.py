# Sphinx configuration for the meadow-deploy API reference

import os
import sys

sys.path.insert(0, os.path.abspath('../src'))

from meadow_deploy import __version__  # noqa: E402

project = 'Meadow Cloud Deploy'
copyright = '2026, Meadow Cloud Deploy contributors'
author = 'Meadow Cloud Deploy contributors'
version = release = __version__

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
    'sphinx_autodoc_typehints',
]

root_doc = 'index'
exclude_patterns = ['_build']

html_theme = 'sphinx_rtd_theme'
html_title = f'meadow-deploy {release}'

autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'show-inheritance': True,
}
autodoc_typehints = 'description'
typehints_use_signature_return = True

napoleon_google_docstring = True
napoleon_numpy_docstring = False

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pydantic': ('https://docs.pydantic.dev/latest', None),
}
