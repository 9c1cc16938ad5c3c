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
"""The jailconf command line interface."""
import typing
import os
import re
import signal
import sys

import click

import libjailconf
import libjailconf.Config.Host
import libjailconf.Host
import libjailconf.errors
import libjailconf.events
from libjailconf.Logger import Logger

logger = Logger()

JAILCONF_CMD_FOLDER = os.path.abspath(os.path.dirname(__file__))

# If a utility decides to cut off the pipe, we don't care (IE: head)
signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def print_events(
    generator: typing.Iterable['libjailconf.events.JailconfEvent']
) -> None:
    """Print events and redraw the lines of events that change their state."""
    lines: typing.Dict[str, typing.Dict[str, typing.Any]] = {}
    for event in generator:

        if event.identifier is None:
            identifier = "generic"
        else:
            identifier = event.identifier

        if event.type not in lines:
            lines[event.type] = {}

        # output fragments
        running_indicator = "+" if (event.done or event.skipped) else "-"
        name = event.type
        if event.identifier is not None:
            name += f"@{event.identifier}"

        output = f"[{running_indicator}] {name}: "

        state = event.get_state_string(
            done="OK",
            error="FAILED",
            skipped="SKIPPED",
            pending="..."
        )
        if event.message is not None:
            output += f"{state} ({event.message})"
        else:
            output += state

        if event.duration is not None:
            output += " [" + str(round(event.duration, 3)) + "s]"

        # new line or update of previous
        if identifier not in lines[event.type]:
            # Indent if previous task is not finished
            lines[event.type][identifier] = logger.screen(
                output,
                indent=event.parent_count
            )
        else:
            lines[event.type][identifier].edit(
                output,
                indent=event.parent_count
            )


class JailconfCLI(click.MultiCommand):
    """Load one command per module of the jailconf package."""

    def list_commands(self, ctx: click.core.Context) -> typing.List[str]:
        """Return the available command names."""
        rv = []

        for filename in os.listdir(JAILCONF_CMD_FOLDER):
            if filename.endswith('.py') and \
                    not filename.startswith('_') and \
                    not filename.startswith('helpers'):
                rv.append(re.sub(r".py$", "", filename))
        rv.sort()

        return rv

    def get_command(
        self,
        ctx: click.core.Context,
        name: str
    ) -> typing.Optional[click.Command]:
        """Import the module of a command and return its click command."""
        if name not in self.list_commands(ctx):
            return None

        mod = __import__(f"jailconf.{name}", None, None, ["jailconf"])

        try:
            if mod.__rootcmd__ and "--help" not in sys.argv[1:]:
                if os.geteuid() != 0:
                    logger.error(
                        "You need to have root privileges"
                        f" to run {name}"
                    )
                    exit(1)
        except AttributeError:
            # It's not a root required command.
            pass
        return typing.cast(click.Command, mod.cli)


@click.option(
    "--log-level",
    "-d",
    default=None,
    help=(
        f"Set the CLI log level {Logger.LOG_LEVELS}"
    )
)
@click.option(
    "--config",
    "-c",
    "config_file",
    default=None,
    help=(
        "Host config file (default: $JAILCONF_CONFIG or "
        f"{libjailconf.Config.Host.DEFAULT_CONFIG_FILE})"
    )
)
@click.option(
    "--conf-dir",
    default=None,
    help="Override the directory of the jail config files"
)
@click.option(
    "--root-dir",
    default=None,
    help="Override the directory of the jail root directories"
)
@click.option(
    "--base-dir",
    default=None,
    help="Override the directory of the base archives"
)
@click.command(cls=JailconfCLI)
@click.version_option(version=libjailconf.VERSION, prog_name="jailconf")
@click.pass_context
def cli(
    ctx: click.core.Context,
    log_level: typing.Optional[str],
    config_file: typing.Optional[str],
    conf_dir: typing.Optional[str],
    root_dir: typing.Optional[str],
    base_dir: typing.Optional[str]
) -> None:
    """Manage FreeBSD jails in jail.conf.d."""
    if log_level is not None:
        try:
            logger.print_level = log_level
        except libjailconf.errors.InvalidLogLevel:
            exit(1)
    ctx.logger = logger
    ctx.print_events = print_events

    try:
        host_config = libjailconf.Config.Host.read_host_config(
            file=config_file,
            overrides=dict(
                conf_dir=conf_dir,
                root_dir=root_dir,
                base_dir=base_dir
            ),
            logger=logger
        )
    except libjailconf.errors.JailconfException:
        exit(1)

    ctx.host = libjailconf.Host.Host(config=host_config, logger=logger)
