"""
isoterm - isolated, relocatable terminal environments.

Provisions fish, starship, zoxide, atuin (and friends) into one directory
that can be activated without touching global system state.
"""

__version__ = "0.1.0"
