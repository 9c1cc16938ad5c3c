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
"""Download base archives with the CLI."""
import click

import libjailconf.Release
import libjailconf.errors

__rootcmd__ = True


@click.command(
    name="fetch",
    help=(
        "Download a base.txz archive. The release version is taken from the "
        "URL, e.g. https://download.freebsd.org/ftp/releases/amd64/amd64/"
        "14.1-RELEASE/base.txz"
    )
)
@click.pass_context
@click.argument("url")
def cli(ctx: click.core.Context, url: str) -> None:
    """Download the base archive of a release."""
    logger = ctx.parent.logger
    host = ctx.parent.host

    try:
        version = libjailconf.Release.get_version_from_url(url, logger=logger)
        release = libjailconf.Release.ReleaseGenerator(
            name=version,
            host=host,
            logger=logger
        )
        ctx.parent.print_events(release.fetch(url=url))
    except libjailconf.errors.JailconfException:
        exit(1)

    logger.log(f"Base system {version} is stored in {release.archive_path}")
