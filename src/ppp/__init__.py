"""ppp — hierarchical backlog and sprint tracking kept in a YAML database
and mirrored as a browsable tree of markdown folders under .ppp/.
"""

__version__ = "0.2.0"
