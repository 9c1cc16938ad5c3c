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
"""Python management of FreeBSD jail.conf.d jails."""
import sys
import os.path
import importlib
import typing


def _get_version() -> str:
    __dirname = os.path.dirname(__file__)
    __version_file = os.path.join(__dirname, 'VERSION')
    with open(__version_file, "r", encoding="utf-8") as f:
        return f.read().split("\n")[0]


class _JailconfModule(sys.modules["libjailconf"].__class__):

    def __getattribute__(self, key: str) -> typing.Any:
        if key == "VERSION":
            return _get_version()
        if key.startswith("_") is True:
            return super().__getattribute__(key)

        if f"libjailconf.{key}" not in sys.modules.keys():
            self.__load_module(key)
        return super().__getattribute__(key)

    def __load_module(self, name: str) -> None:
        try:
            importlib.import_module(f"libjailconf.{name}")
        except ModuleNotFoundError as e:
            if e.name != f"libjailconf.{name}":
                raise
            raise AttributeError(f"module 'libjailconf' has no member {name}")


sys.modules["libjailconf"].__class__ = _JailconfModule
