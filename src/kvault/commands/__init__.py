"""Built-in CLI command groups.

- :mod:`kvault.commands.secrets` -- ``kvault secrets ...``
- :mod:`kvault.commands.config` -- ``kvault config ...``
"""
