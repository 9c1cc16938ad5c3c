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
"""Shared option handling of the create and delete commands."""
import typing

import libjailconf.ConfigReconciler
import libjailconf.Config.Bulk
import libjailconf.Host
import libjailconf.JailRecord
import libjailconf.Logger


def load_template(
    template_file: typing.Optional[str],
    logger: 'libjailconf.Logger.Logger'
) -> typing.Optional['libjailconf.ConfigReconciler.JailConfTemplate']:
    """Return the user template or None for the default template."""
    if template_file is None:
        return None
    logger.debug(f"Using the jail config template {template_file}")
    return libjailconf.ConfigReconciler.JailConfTemplate.from_file(
        template_file,
        logger=logger
    )


def load_bulk_records(
    bulk_file: str,
    name: typing.Optional[str],
    host: 'libjailconf.Host.HostGenerator',
    logger: 'libjailconf.Logger.Logger'
) -> typing.List['libjailconf.JailRecord.JailRecord']:
    """Return the records of a bulk document, optionally of a single jail."""
    bulk_config = libjailconf.Config.Bulk.BulkConfig.load(
        bulk_file,
        logger=logger
    )
    return bulk_config.filter(name).records(host.config)
