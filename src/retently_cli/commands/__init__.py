"""CLI sub-commands for retently-cli.

Each module holds plain callback functions that :mod:`retently_cli.app`
registers on the root application under hyphenated names:

* :mod:`~retently_cli.commands.customers` -- list, get, bulk-create, delete.
* :mod:`~retently_cli.commands.feedback` -- responses, scores and tags.
* :mod:`~retently_cli.commands.campaigns` -- campaigns and companies.
* :mod:`~retently_cli.commands.surveys` -- transactional surveys.
* :mod:`~retently_cli.commands.utility` -- ``api-status`` and ``list-tools``.
* :mod:`~retently_cli.commands.cache` -- cache inspection and invalidation.

:mod:`~retently_cli.commands.config` exports ``config_app``, a
:class:`typer.Typer` group mounted as ``config``.
"""
