# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""List jails with the CLI."""
import click
import json
import typing

import texttable

import libjailconf.Jail
import libjailconf.Jails
import libjailconf.errors

supported_output_formats = ['table', 'csv', 'list', 'json']

DEFAULT_COLUMNS = ["slot", "name", "ip4_addr", "interface", "root_exists"]
LONG_COLUMNS = DEFAULT_COLUMNS + ["gateway", "conf_path", "root_path"]


@click.command(
    name="list",
    help="List the jails configured in the jail config directory."
)
@click.pass_context
@click.option("--long", "-l", "_long", is_flag=True, default=False,
              help="Show the gateway and all paths.")
@click.option("--output", "-o", default=None,
              help="Comma separated list of columns.")
@click.option("--output-format", "-f", default="table",
              type=click.Choice(supported_output_formats))
@click.option("--header/--no-header", "-H/-NH", is_flag=True, default=True,
              help="Show or hide column name heading.")
@click.argument("names", nargs=-1)
def cli(
    ctx: click.core.Context,
    _long: bool,
    output: typing.Optional[str],
    output_format: str,
    header: bool,
    names: typing.Tuple[str, ...]
) -> None:
    """List jails in various formats."""
    logger = ctx.parent.logger
    host = ctx.parent.host

    if output is not None and _long is True:
        logger.error("--output and --long can't be used together")
        exit(1)

    columns = _list_output_columns(output, _long)

    try:
        jails = list(libjailconf.Jails.JailsGenerator(
            names=(None if (len(names) == 0) else list(names)),
            host=host,
            logger=logger
        ))
        rows = [_lookup_jail_values(jail, columns) for jail in jails]
    except KeyError as e:
        logger.error(f"Unknown column {e}")
        exit(1)
    except libjailconf.errors.JailconfException:
        exit(1)

    if output_format == "list":
        _print_list(rows, columns, header, "\t")
    elif output_format == "csv":
        _print_list(rows, columns, header, ";")
    elif output_format == "json":
        _print_json(rows, columns)
    else:
        _print_table(rows, columns, header)


def _print_table(
    rows: typing.List[typing.List[str]],
    columns: typing.List[str],
    show_header: bool
) -> None:

    table = texttable.Texttable(max_width=0)
    table.set_cols_dtype(["t"] * len(columns))

    table_head = (list(x.upper() for x in columns))

    if show_header:
        table.add_rows([table_head] + rows)
    else:
        table.add_rows(rows, header=False)

    output = table.draw()
    if output:
        print(output)


def _print_list(
    rows: typing.List[typing.List[str]],
    columns: typing.List[str],
    show_header: bool,
    separator: str=";"
) -> None:

    if show_header is True:
        print(separator.join(columns).upper())

    for row in rows:
        print(separator.join(row))


def _print_json(
    rows: typing.List[typing.List[str]],
    columns: typing.List[str]
) -> None:
    output = [dict(zip(columns, row)) for row in rows]
    print(json.dumps(output, indent=2, sort_keys=True))


def _lookup_jail_values(
    jail: 'libjailconf.Jail.JailGenerator',
    columns: typing.List[str]
) -> typing.List[str]:
    return list(map(
        lambda column: str(jail.getstring(column)),
        columns
    ))


def _list_output_columns(
    user_input: typing.Optional[str]="",
    long_mode: bool=False
) -> typing.List[str]:

    if user_input is not None:
        return user_input.strip().split(',')
    elif long_mode is True:
        return list(LONG_COLUMNS)
    else:
        return list(DEFAULT_COLUMNS)
