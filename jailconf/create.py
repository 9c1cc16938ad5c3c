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
"""Create jails with the CLI."""
import click
import typing

import libjailconf.Jail
import libjailconf.JailRecord
import libjailconf.errors

from .helpers_bulk import load_bulk_records, load_template

__rootcmd__ = True


@click.command(
    name="create",
    help=(
        "Create a jail from a base archive. With --config-file all jails of "
        "a bulk document (or only NAME) are created."
    )
)
@click.pass_context
@click.option(
    "--release", "--version", "-r",
    "version",
    required=False,
    help="The base release of the jail (default: host release)."
)
@click.option(
    "--number", "-n",
    type=int,
    required=False,
    help="Use this slot number instead of the next free one."
)
@click.option(
    "--template", "-t",
    "template_file",
    required=False,
    help="jinja2 template of the jail config."
)
@click.option(
    "--config-file", "-j",
    "bulk_file",
    required=False,
    help="Create the jails defined in a JSON (or UCL) bulk document."
)
@click.argument("name", required=False)
def cli(
    ctx: click.core.Context,
    version: typing.Optional[str],
    number: typing.Optional[int],
    template_file: typing.Optional[str],
    bulk_file: typing.Optional[str],
    name: typing.Optional[str]
) -> None:
    """Create one or many jails."""
    logger = ctx.parent.logger
    host = ctx.parent.host

    if (bulk_file is None) and (name is None):
        logger.error("No jail name or --config-file specified")
        exit(1)

    if (bulk_file is not None) and \
            ((version is not None) or (number is not None)):
        logger.error("--release and --number are taken from the config file")
        exit(1)

    try:
        template = load_template(template_file, logger)
        records: typing.List[libjailconf.JailRecord.JailRecord]
        if bulk_file is not None:
            records = load_bulk_records(bulk_file, name, host, logger)
        else:
            if version is None:
                version = host.release_version
                logger.spam(
                    "No release selected (-r, --release)."
                    f" Selecting host release '{version}' as default."
                )
            records = [libjailconf.JailRecord.JailRecord(
                name=str(name),
                version=version,
                slot=number,
                host_config=host.config,
                logger=logger
            )]
    except libjailconf.errors.JailconfException:
        exit(1)

    failed_jails = []
    for record in records:
        jail = libjailconf.Jail.JailGenerator(
            record,
            template=template,
            host=host,
            logger=logger
        )
        try:
            ctx.parent.print_events(jail.create())
        except libjailconf.errors.JailconfException:
            failed_jails.append(jail)

    if len(failed_jails) > 0:
        names = ", ".join(jail.name for jail in failed_jails)
        logger.error(f"Failed to create: {names}")
        exit(1)
