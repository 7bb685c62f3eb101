'''
Consolidates browser history from Chrome, Firefox and Safari into a single sqlite database
'''

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version('onehistory')
except PackageNotFoundError:
    # running from a source checkout without installing
    __version__ = 'unknown'
