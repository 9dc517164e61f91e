"""
mist -- encrypted single-archive directory sync over SSH.

One local folder, one remote host, one named profile.
The folder travels as a tar.gz sealed with GPG; a tiny hash
sidecar next to it tells us when there is nothing to do.
"""

__version__ = "0.1.0"
__author__ = "mist contributors"
