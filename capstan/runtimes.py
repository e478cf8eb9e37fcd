"""The runtimes a package can declare in meta/run.yaml."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

from capstan.runtime_base import CommonRuntime, RuntimeType, is_compatible_base

# Packages that behave exactly like the default Java base.
JAVA_PACKAGES = ("^openjdk.*",)

DEFAULT_JAVA_BASE = "openjdk8-zulu-compact1:java"
NODE_BASE = "node-4.4.5:node"
PYTHON_BASE = "python-2.7:python"

_TRUE_WORDS = {"true", "yes", "on", "y"}
_FALSE_WORDS = {"false", "no", "off", "n", ""}


def _text(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"'{key}' must be a scalar value")


def _text_list(value: Any, key: str) -> list[str]:
    if value is None or value == "":
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return [_text(item, key) for item in value]


def _flag(value: Any, key: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"'{key}' must be a boolean")


def _env_free(env: Mapping[str, str], *keys: str) -> bool:
    return all(not env.get(key) for key in keys)


@dataclass
class NativeRuntime(CommonRuntime):
    """Runs an arbitrary command inside OSv."""

    boot_cmd: str = ""

    runtime_type: ClassVar[RuntimeType] = RuntimeType.NATIVE
    description: ClassVar[str] = "Run arbitrary command inside OSv"
    dependencies: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        fields = super()._common_fields(data)
        fields["boot_cmd"] = _text(data.get("bootcmd"), "bootcmd")
        return fields

    def validate(self) -> None:
        if not self.base and not self.boot_cmd:
            raise ValueError("'bootcmd' must be provided")
        super().validate()

    def get_boot_cmd(self, cmd_confs: Mapping[str, Any], env: Mapping[str, str]) -> str:
        return self.build_boot_cmd(self.boot_cmd, cmd_confs, env)

    def get_yaml_template(self) -> str:
        return """
# REQUIRED
# Command to be executed in OSv.
# Note that package root will correspond to filesystem root (/) in OSv image.
# Example value: /usr/bin/simpleFoam.so -help
bootcmd: <command>
"""


@dataclass
class JavaRuntime(CommonRuntime):
    """Runs a Java application."""

    xms: str = ""
    xmx: str = ""
    classpath: list[str] = field(default_factory=list)
    jvm_args: list[str] = field(default_factory=list)
    main: str = ""
    args: list[str] = field(default_factory=list)

    runtime_type: ClassVar[RuntimeType] = RuntimeType.JAVA
    description: ClassVar[str] = "Run Java application"
    dependencies: ClassVar[tuple[str, ...]] = ("openjdk8-zulu-compact1",)

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        fields = super()._common_fields(data)
        fields.update(
            xms=_text(data.get("xms"), "xms"),
            xmx=_text(data.get("xmx"), "xmx"),
            classpath=_text_list(data.get("classpath"), "classpath"),
            jvm_args=_text_list(data.get("jvm_args"), "jvm_args"),
            main=_text(data.get("main"), "main"),
            args=_text_list(data.get("args"), "args"),
        )
        return fields

    def validate(self) -> None:
        # Java-specific settings only make sense for an openjdk-like base.
        if is_compatible_base(self.base, JAVA_PACKAGES):
            if not self.main:
                raise ValueError("'main' must be provided")
        elif (
            self.xms
            or self.xmx
            or self.classpath
            or self.jvm_args
            or self.main
            or self.args
        ):
            raise ValueError(
                "incompatible arguments specified "
                "[xms,xmx,classpath,jvm_args,main,args] for custom 'base'"
            )
        super().validate()

    def get_boot_cmd(self, cmd_confs: Mapping[str, Any], env: Mapping[str, str]) -> str:
        conf = replace(self, env=dict(self.env))
        if not conf.base:
            conf.base = DEFAULT_JAVA_BASE
        if is_compatible_base(conf.base, JAVA_PACKAGES):
            classpath = conf.classpath or ["/"]
            jvm_args = list(conf.jvm_args)
            if conf.main.endswith(".jar") and "-jar" not in jvm_args:
                jvm_args.append("-jar")
            conf.set_default_env(
                {
                    "XMS": conf.xms,
                    "XMX": conf.xmx,
                    "CLASSPATH": ":".join(classpath),
                    # runscript cannot take an empty variable as a parameter.
                    "JVM_ARGS": " ".join(jvm_args) if jvm_args else "-Dx=y",
                    "MAIN": conf.main,
                    "ARGS": " ".join(conf.args),
                }
            )
        return conf.build_boot_cmd("", cmd_confs, env)

    def get_yaml_template(self) -> str:
        return """
# REQUIRED
# Fully classified name of the main class.
# Example value: main.Hello
main: <name>

# OPTIONAL
# A list of paths where classes and other resources can be found.
# By default, the unikernel root "/" is added to the classpath.
# Example value: classpath:
#                   - /
#                   - /src
classpath:
   - <list>

# OPTIONAL
# Initial and maximum JVM memory size.
# Example value: xms: 512m
xms: <value>
xmx: <value>

# OPTIONAL
# A list of JVM args.
# Example value: jvm_args:
#                   - -Djava.net.preferIPv4Stack=true
#                   - -Dhadoop.log.dir=/hdfs/logs
jvm_args:
   - <list>

# OPTIONAL
# A list of command line args used by the application.
# Example value: args:
#                   - argument1
#                   - argument2
args:
   - <list>
""" + super().get_yaml_template()


@dataclass
class NodeJsRuntime(CommonRuntime):
    """Runs a JavaScript application on Node.js."""

    node_args: list[str] = field(default_factory=list)
    main: str = ""
    args: list[str] = field(default_factory=list)
    is_shell: bool = False

    runtime_type: ClassVar[RuntimeType] = RuntimeType.NODEJS
    description: ClassVar[str] = "Run JavaScript NodeJS 4.4.5 application"
    dependencies: ClassVar[tuple[str, ...]] = ("node-4.4.5",)

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        fields = super()._common_fields(data)
        fields.update(
            node_args=_text_list(data.get("node_args"), "node_args"),
            main=_text(data.get("main"), "main"),
            args=_text_list(data.get("args"), "args"),
            is_shell=_flag(data.get("shell"), "shell"),
        )
        return fields

    def validate(self) -> None:
        if self.base:
            if self.is_shell or self.node_args or self.main or self.args:
                raise ValueError(
                    "incompatible arguments specified "
                    "[shell,node_args,main,args] for custom 'base'"
                )
        elif self.is_shell:
            if self.main or self.args:
                raise ValueError(
                    "incompatible arguments specified [main,args] for shell=true"
                )
            if not _env_free(self.env, "MAIN", "ARGS"):
                raise ValueError(
                    "incompatible 'env' keys specified [MAIN,ARGS] for shell=true"
                )
        elif not self.main:
            raise ValueError("'main' must be provided")
        super().validate()

    def get_boot_cmd(self, cmd_confs: Mapping[str, Any], env: Mapping[str, str]) -> str:
        conf = replace(self, env=dict(self.env), base=NODE_BASE)
        # runscript cannot take an empty variable as a parameter.
        conf.set_default_env(
            {"NODE_ARGS": " ".join(conf.node_args) if conf.node_args else "--"}
        )
        if conf.is_shell:
            conf.env["MAIN"] = ""
            conf.env["ARGS"] = ""
        else:
            conf.set_default_env({"MAIN": conf.main, "ARGS": " ".join(conf.args)})
        return conf.build_boot_cmd("", cmd_confs, env)

    def get_yaml_template(self) -> str:
        return """
# REQUIRED
# Filepath of the NodeJS entrypoint (where server is defined).
# Note that package root will correspond to filesystem root (/) in OSv image.
# Example value: /server.js
main: <filepath>

# OPTIONAL
# A list of Node.js args.
# Example value: node_args:
#                   - --require module1
node_args:
   - <list>

# OPTIONAL
# A list of command line args used by the application.
# Example value: args:
#                   - argument1
#                   - argument2
args:
   - <list>

# OPTIONAL
# Set to true to only run node shell. Note that "main" and "args" will then be ignored.
shell: false
""" + super().get_yaml_template()


@dataclass
class PythonRuntime(CommonRuntime):
    """Runs a Python 2.7 application."""

    python_args: list[str] = field(default_factory=list)
    main: str = ""
    args: list[str] = field(default_factory=list)
    is_shell: bool = False

    runtime_type: ClassVar[RuntimeType] = RuntimeType.PYTHON
    description: ClassVar[str] = "Run Python 2.7 application"
    dependencies: ClassVar[tuple[str, ...]] = ("python-2.7",)

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        fields = super()._common_fields(data)
        fields.update(
            python_args=_text_list(data.get("python_args"), "python_args"),
            main=_text(data.get("main"), "main"),
            args=_text_list(data.get("args"), "args"),
            is_shell=_flag(data.get("shell"), "shell"),
        )
        return fields

    def validate(self) -> None:
        if self.base:
            if self.is_shell or self.python_args or self.main or self.args:
                raise ValueError(
                    "incompatible arguments specified "
                    "[shell,python_args,main,args] for custom 'base'"
                )
        elif self.is_shell:
            if self.main or self.args:
                raise ValueError(
                    "incompatible arguments specified [main,args] for shell=true"
                )
            if not _env_free(self.env, "MAIN", "ARGS"):
                raise ValueError(
                    "incompatible 'env' keys specified [MAIN,ARGS] for shell=true"
                )
        elif not self.main:
            raise ValueError("'main' must be provided")
        super().validate()

    def get_boot_cmd(self, cmd_confs: Mapping[str, Any], env: Mapping[str, str]) -> str:
        conf = replace(self, env=dict(self.env), base=PYTHON_BASE)
        # runscript cannot take an empty variable as a parameter.
        conf.set_default_env(
            {"PYTHON_ARGS": " ".join(conf.python_args) if conf.python_args else "-O"}
        )
        if conf.is_shell:
            conf.env["MAIN"] = "-"
            conf.env["ARGS"] = ""
        else:
            conf.set_default_env({"MAIN": conf.main, "ARGS": " ".join(conf.args)})
        return conf.build_boot_cmd("", cmd_confs, env)

    def get_yaml_template(self) -> str:
        return """
# REQUIRED
# Filepath of the Python script.
# Note that package root will correspond to filesystem root (/) in OSv image.
# Example value: /hello-world.py
main: <filepath>

# OPTIONAL
# A list of Python args.
# Example value: node_args:
#                   - -O
python_args:
   - <list>

# OPTIONAL
# A list of command line args used by the application.
# Example value: args:
#                   - argument1
#                   - argument2
args:
   - <list>
""" + super().get_yaml_template()