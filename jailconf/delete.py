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
"""Delete jails with the CLI."""
import click
import typing

import libjailconf.Jail
import libjailconf.JailRecord
import libjailconf.errors

from .helpers_bulk import load_bulk_records, load_template

__rootcmd__ = True


def confirm_deletion(record: 'libjailconf.JailRecord.JailRecord') -> bool:
    """Ask the user before a jail is deleted."""
    message = "\n- ".join([
        f"The jail '{record.name}' will be deleted",
        record.conf_path,
        record.root_path
    ]) + "\nAre you sure?"
    return click.confirm(message, default=False) is True


@click.command(
    name="delete",
    help=(
        "Delete a jail config and its root directory. Jails are only deleted "
        "when their config matches the template."
    )
)
@click.pass_context
@click.option(
    "--force", "-f",
    default=False,
    is_flag=True,
    help="Delete the jail without asking for confirmation."
)
@click.option(
    "--release", "--version", "-r",
    "version",
    required=False,
    help="The base release for templates that render it."
)
@click.option(
    "--template", "-t",
    "template_file",
    required=False,
    help="jinja2 template the jail config was rendered from."
)
@click.option(
    "--config-file", "-j",
    "bulk_file",
    required=False,
    help="Delete the jails defined in a JSON (or UCL) bulk document."
)
@click.argument("name", required=False)
def cli(
    ctx: click.core.Context,
    force: bool,
    version: typing.Optional[str],
    template_file: typing.Optional[str],
    bulk_file: typing.Optional[str],
    name: typing.Optional[str]
) -> None:
    """Delete one or many jails."""
    logger = ctx.parent.logger
    host = ctx.parent.host

    if (bulk_file is None) and (name is None):
        logger.error("No jail name or --config-file specified")
        exit(1)

    try:
        template = load_template(template_file, logger)
        records: typing.List[libjailconf.JailRecord.JailRecord]
        if bulk_file is not None:
            records = load_bulk_records(bulk_file, name, host, logger)
        else:
            records = [libjailconf.JailRecord.JailRecord(
                name=str(name),
                version=version,
                host_config=host.config,
                logger=logger
            )]
    except libjailconf.errors.JailconfException:
        exit(1)

    confirm = None if (force is True) else confirm_deletion

    failed_jails = []
    for record in records:
        jail = libjailconf.Jail.JailGenerator(
            record,
            template=template,
            host=host,
            logger=logger
        )
        try:
            ctx.parent.print_events(jail.destroy(confirm=confirm))
        except libjailconf.errors.JailconfException:
            failed_jails.append(jail)

    if len(failed_jails) > 0:
        names = ", ".join(jail.name for jail in failed_jails)
        logger.error(f"Failed to delete: {names}")
        exit(1)
