"""Compile scenarios driven through the public :class:`Config` surface."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Optional

import pytest
import yaml
from pydantic import BaseModel, Field

from lib_compiled_config import (
    ROOT,
    CodecNotFound,
    Config,
    DecodingFailure,
    FileMissing,
    MemoryFS,
    NotCompiledYet,
    NotFound,
    TypeMismatch,
    add_buffer,
    add_buffer_fn,
    add_dir,
    add_file,
    add_value,
    add_value_fn,
    as_default,
    auto_compile,
    decode_hook,
    default_unmarshal_options,
    expand,
    expand_env,
    format_as,
    include_origins,
    keymap,
    optional,
    redact_secrets,
    required,
    set_key_delimiter,
    sort_records_lexically,
    std_cfg_layout,
    tag_name,
    weakly_typed_input,
    with_validator,
)
from lib_compiled_config.adapters.path_resolvers.default import StandardLayoutResolver
from tests.support import memory_fs, write_tree


@dataclass
class Server:
    host: str
    port: int = 80


@dataclass
class TaggedServer:
    host: str = field(metadata={"cfg": "Host"})
    port: Optional[int] = field(default=80, metadata={"cfg": "Port"})


class AliasedServer(BaseModel):
    host: str = Field(alias="Host")
    port: int = Field(80, alias="Port")


def _compiled(*options) -> Config:
    config = Config(*options)
    config.compile()
    return config


def test_defaults_then_files_in_name_order() -> None:
    fs = memory_fs({"z.json": {"Status": "zeta"}, "a.json": {"Other": "alpha"}})
    config = _compiled(add_buffer("default.json", '{"Status": "default"}', as_default()), add_dir(fs, "."))

    assert config.unmarshal(ROOT) == {"Status": "zeta", "Other": "alpha"}
    assert config.records == ["default.json", "a.json", "z.json"]
    assert config.compiled_at is not None


def test_default_records_stay_below_every_other_record() -> None:
    config = _compiled(
        add_value("zz-default", "port", 1, as_default()),
        add_value("aa-override", "port", 2),
    )
    assert config.unmarshal("port") == 2
    assert config.records == ["zz-default", "aa-override"]


def test_natural_and_lexical_ordering_differ() -> None:
    fs = memory_fs({"2.json": {"v": "two"}, "10.json": {"v": "ten"}})
    assert _compiled(add_dir(fs, ".")).unmarshal("v") == "ten"
    assert _compiled(add_dir(fs, "."), sort_records_lexically()).unmarshal("v") == "two"


def test_operations_before_compile_fail() -> None:
    config = Config(add_value("v", "a", 1))
    with pytest.raises(NotCompiledYet):
        config.unmarshal("a")
    with pytest.raises(NotCompiledYet):
        config.marshal()


def test_auto_compile_and_with_options() -> None:
    config = Config(add_value("a", "port", 1), auto_compile())
    assert config.unmarshal("port") == 1
    config.with_options(add_value("b", "port", 2))
    assert config.unmarshal("port") == 2


def test_failed_compile_keeps_the_previous_result() -> None:
    config = _compiled(add_value("a", "port", 1))
    config.with_options(add_buffer("broken.json", b"{broken"))
    with pytest.raises(DecodingFailure):
        config.compile()
    assert config.unmarshal("port") == 1
    assert config.records == ["a"]


def test_missing_exact_file_fails_the_compile() -> None:
    with pytest.raises(FileMissing):
        _compiled(add_file(MemoryFS({}), "app.json"))


def test_typed_unmarshal_with_optional_and_required() -> None:
    config = _compiled(add_value("cfg", "server", {"host": "db", "port": "5432"}))

    assert config.unmarshal("server", Server) == Server("db", 5432)
    assert config.unmarshal("server.port", int) == 5432
    assert config.unmarshal("missing", Server, optional()) is None
    with pytest.raises(NotFound):
        config.unmarshal("missing", Server, optional(), required())


def test_unmarshal_fn_defers_the_lookup() -> None:
    config = Config(add_value("cfg", "server", {"host": "db"}))
    fetch = config.unmarshal_fn("server", Server)
    config.compile()
    assert fetch() == Server("db")


def test_validators_reject_decoded_values() -> None:
    def valid_port(server: Server) -> None:
        if server.port < 1024:
            raise ValueError("privileged port")

    config = _compiled(add_value("cfg", "server", {"host": "db", "port": 80}))
    with pytest.raises(DecodingFailure, match="privileged port"):
        config.unmarshal("server", Server, with_validator(valid_port))
    assert config.unmarshal("server", Server, with_validator(valid_port), with_validator(None)).port == 80


def test_default_unmarshal_options_apply_to_every_call() -> None:
    config = _compiled(
        add_value("cfg", ROOT, {"Host": "db", "Port": 1}),
        default_unmarshal_options(keymap({"host": "Host", "port": "Port"})),
    )
    assert config.unmarshal(ROOT, Server) == Server("db", 1)


def test_custom_key_delimiter() -> None:
    config = _compiled(set_key_delimiter("/"), add_value("cfg", "a/b", "deep"))
    assert config.unmarshal("a/b") == "deep"
    assert config.fetch("a").to_raw() == {"b": "deep"}


def test_producers_see_the_records_merged_before_them() -> None:
    config = _compiled(
        add_value("a-host", "host", "db"),
        add_value_fn("b-url", "url", lambda name, unmarshal: f"http://{unmarshal('host')}/{name}"),
    )
    assert config.unmarshal("url") == "http://db/b-url"


def test_expansion_runs_over_the_merged_tree() -> None:
    config = _compiled(
        add_buffer("app.yaml", "url: http://${HOST}:${PORT}\nuser: ${USER}\n"),
        expand({"HOST": "db", "PORT": "5432"}),
        expand_env(environ={"USER": "svc"}),
    )
    assert config.unmarshal(ROOT) == {"url": "http://db:5432", "user": "svc"}


def test_marshal_redacts_secrets_by_default() -> None:
    config = _compiled(add_buffer("app.yaml", "user: svc\npassword((secret)): hunter2\n"))

    assert yaml.safe_load(config.marshal()) == {"user": "svc", "password": "REDACTED"}
    assert yaml.safe_load(config.marshal(redact_secrets(False)))["password"] == "hunter2"
    assert json.loads(config.marshal(format_as("json")))["password"] == "REDACTED"


def test_marshal_with_origins_names_every_record() -> None:
    fs = memory_fs({"a.json": {"a": 1}, "b.json": {"b": 2}})
    text = _compiled(add_dir(fs, ".")).marshal(include_origins()).decode("utf-8")
    assert "# a.json" in text and "# b.json" in text


def test_marshal_edge_cases() -> None:
    assert _compiled().marshal() == b""
    with pytest.raises(CodecNotFound):
        _compiled(add_value("v", "a", 1)).marshal(format_as("toml"))


def test_standard_layout_stops_at_the_first_populated_location(tmp_path) -> None:
    cwd = write_tree(tmp_path / "cwd", {"notes.txt": "unrelated"})
    home = write_tree(tmp_path / "home" / ".demo", {"demo.yaml": "a: 1\n", "conf.d/10-extra.json": '{"b": 2}'})
    etc = write_tree(tmp_path / "etc" / "demo", {"demo.yaml": "a: 99\nc: 3\n"})
    env = {"HOME": str(home.parent), "LIB_COMPILED_CONFIG_ETC": str(etc.parent)}
    resolver = StandardLayoutResolver("demo", cwd=cwd, env=env, platform="linux")

    config = _compiled(std_cfg_layout("demo", resolver=resolver))
    assert config.unmarshal(ROOT) == {"a": 1, "b": 2}

    write_tree(cwd, {"demo.json": '{"a": 5}'})
    config.compile()
    assert config.unmarshal(ROOT) == {"a": 5}
    assert config.records == ["demo.json"]


def test_standard_layout_with_explicit_files(tmp_path) -> None:
    cwd = write_tree(tmp_path / "cwd", {"local.yaml": "a: 1\n", "demo.yaml": "a: 2\n"})
    resolver = StandardLayoutResolver("demo", cwd=cwd, env={}, platform="linux")

    config = _compiled(std_cfg_layout("demo", ["local.yaml"], resolver=resolver))
    assert config.unmarshal("a") == 1


def test_unmarshal_waits_for_a_running_compile() -> None:
    started = threading.Event()
    release = threading.Event()

    def slow(name, unmarshal):
        started.set()
        release.wait(timeout=5)
        return b'{"port": 2}'

    config = _compiled(add_value("a", "port", 1))
    config.with_options(add_buffer_fn("slow.json", slow))
    compiler = threading.Thread(target=config.compile)
    compiler.start()
    assert started.wait(timeout=5)

    seen = []
    reader = threading.Thread(target=lambda: seen.append(config.unmarshal("port")))
    reader.start()
    reader.join(timeout=0.2)
    assert reader.is_alive()
    assert seen == []

    release.set()
    compiler.join(timeout=5)
    reader.join(timeout=5)
    assert seen == [2]


def test_failed_compile_releases_the_lock() -> None:
    config = _compiled(add_value("a", "port", 1))
    config.with_options(add_value("b", "port", {"nested": 1}))
    with pytest.raises(TypeMismatch):
        config.compile()

    seen = []
    reader = threading.Thread(target=lambda: seen.append(config.unmarshal("port")))
    reader.start()
    reader.join(timeout=5)
    assert not reader.is_alive()
    assert seen == [1]


def test_tag_name_and_aliases_select_keys() -> None:
    config = _compiled(add_value("cfg", "server", {"Host": "db", "Port": None}))

    server = config.unmarshal("server", TaggedServer, tag_name("cfg"), weakly_typed_input(False))
    assert server == TaggedServer("db", None)
    with pytest.raises(DecodingFailure):
        config.unmarshal("server", AliasedServer)
    assert _compiled(add_value("cfg", "server", {"Host": "db"})).unmarshal("server", AliasedServer).port == 80


def test_values_honour_decode_options() -> None:
    def upper_hosts(type_, value):
        return value.upper() if isinstance(value, str) else value

    config = _compiled(add_value("cfg", "server", TaggedServer("db", 5432), tag_name("cfg"), decode_hook(upper_hosts)))
    assert config.unmarshal("server") == {"Host": "DB", "Port": 5432}
    assert config.unmarshal("server", TaggedServer, tag_name("cfg")) == TaggedServer("DB", 5432)
