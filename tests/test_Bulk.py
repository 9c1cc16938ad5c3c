# Copyright (c) 2017-2019, Stefan Grönke
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
"""Unit tests for bulk jail definitions."""
import typing
import json
import os.path

import pytest

import libjailconf.Config.Bulk
import libjailconf.Config.Host
import libjailconf.errors
import libjailconf.Logger


def _definition(**kwargs: typing.Any) -> typing.Dict[str, typing.Any]:
    definition = dict(name="web1", number=1, version="14.1-RELEASE")
    definition.update(kwargs)
    return definition


class TestBulkConfig(object):
    """Run BulkConfig unit tests."""

    def test_load_json(
        self,
        tmp_path: typing.Any,
        host_config: 'libjailconf.Config.Host.HostConfig',
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test reading jail definitions from a JSON document."""
        bulk_file = os.path.join(str(tmp_path), "jails.json")
        with open(bulk_file, "w") as f:
            json.dump(dict(jails=[
                _definition(),
                _definition(name="db1", number=2, raw_sockets=1)
            ]), f)

        bulk_config = libjailconf.Config.Bulk.BulkConfig.load(
            bulk_file,
            logger=logger
        )
        assert len(bulk_config) == 2
        assert bulk_config.names == ["web1", "db1"]

        records = bulk_config.records(host_config)
        assert [record.slot for record in records] == [1, 2]
        assert records[1].version == "14.1-RELEASE"
        assert records[1].extra_fields == dict(raw_sockets=1)
        assert records[1].template_context["raw_sockets"] == 1

    def test_missing_file(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a missing bulk document raises ConfigReadError."""
        with pytest.raises(libjailconf.errors.ConfigReadError):
            libjailconf.Config.Bulk.BulkConfig.load(
                os.path.join(str(tmp_path), "missing.json"),
                logger=logger
            )

    def test_file_with_invalid_encoding(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that bulk documents that are not UTF-8 are rejected."""
        bulk_file = os.path.join(str(tmp_path), "jails.json")
        with open(bulk_file, "wb") as f:
            f.write(
                b'{"jails": [{"name": "w\xff", "number": 1, '
                b'"version": "14.1-RELEASE"}]}'
            )
        with pytest.raises(libjailconf.errors.ConfigParseError):
            libjailconf.Config.Bulk.BulkConfig.load(bulk_file, logger=logger)

    def test_missing_jails_list(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that documents without jails are rejected."""
        with pytest.raises(libjailconf.errors.MissingField):
            libjailconf.Config.Bulk.BulkConfig.from_dict({}, logger=logger)
        with pytest.raises(libjailconf.errors.InvalidFieldType):
            libjailconf.Config.Bulk.BulkConfig.from_dict(
                dict(jails=_definition()),
                logger=logger
            )

    @pytest.mark.parametrize("field", ["name", "number", "version"])
    def test_missing_field(
        self,
        field: str,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the missing field is named in the error."""
        definition = _definition()
        del definition[field]
        with pytest.raises(libjailconf.errors.MissingField) as e:
            libjailconf.Config.Bulk.BulkConfig([definition], logger=logger)
        assert f"'{field}'" in str(e.value)

    @pytest.mark.parametrize("field,value", [
        ("name", 1),
        ("number", "1"),
        ("number", True),
        ("number", 1.5),
        ("version", None)
    ])
    def test_invalid_field_type(
        self,
        field: str,
        value: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that mistyped fields raise InvalidFieldType."""
        definition = _definition(**{field: value})
        with pytest.raises(libjailconf.errors.InvalidFieldType) as e:
            libjailconf.Config.Bulk.BulkConfig([definition], logger=logger)
        assert f"'{field}'" in str(e.value)

    def test_whole_float_number(
        self,
        host_config: 'libjailconf.Config.Host.HostConfig',
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that JSON numbers like 2.0 are accepted as jail numbers."""
        bulk_config = libjailconf.Config.Bulk.BulkConfig.from_dict(
            json.loads('{"jails": [{"name": "web1", "number": 2.0, '
                       '"version": "14.1-RELEASE"}]}'),
            logger=logger
        )
        record = bulk_config.records(host_config)[0]
        assert record.slot == 2
        assert isinstance(record.slot, int)
        assert record.conf_filename == "2-web1.conf"

    def test_definition_is_no_object(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that jail definitions must be objects."""
        with pytest.raises(libjailconf.errors.InvalidFieldType):
            libjailconf.Config.Bulk.BulkConfig(["web1"], logger=logger)

    def test_duplicates(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that names and numbers are unique within a document."""
        with pytest.raises(libjailconf.errors.DuplicateJailName):
            libjailconf.Config.Bulk.BulkConfig(
                [_definition(), _definition(number=2)],
                logger=logger
            )
        with pytest.raises(libjailconf.errors.DuplicateSlot):
            libjailconf.Config.Bulk.BulkConfig(
                [_definition(), _definition(name="db1")],
                logger=logger
            )

    def test_filter(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test selecting a single jail of a document."""
        bulk_config = libjailconf.Config.Bulk.BulkConfig(
            [_definition(), _definition(name="db1", number=2)],
            logger=logger
        )
        assert bulk_config.filter().names == ["web1", "db1"]
        assert bulk_config.filter("db1").names == ["db1"]
        with pytest.raises(libjailconf.errors.JailNotFound):
            bulk_config.filter("mail1")

    def test_derived_fields_are_not_replaced(
        self,
        host_config: 'libjailconf.Config.Host.HostConfig',
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that extra fields cannot change the derived identity."""
        bulk_config = libjailconf.Config.Bulk.BulkConfig(
            [_definition(ip4_addr="10.0.0.1")],
            logger=logger
        )
        record = bulk_config.records(host_config)[0]
        assert record.template_context["ip4_addr"] == "192.168.2.11"
