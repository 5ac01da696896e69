"""Static shell completion scripts."""

from __future__ import annotations

SHELLS = ("bash", "zsh", "fish")
ACTIONS = ("plan", "apply")
OPTIONS = ("-v", "--verbose", "--json", "--gitlab-url", "-h", "--help", "--version")


def bash_script(prog: str, modules: list[str]) -> str:
    commands = " ".join([*ACTIONS, *modules, "completions"])
    module_cases = "|".join(modules) or "__none__"
    return f"""_{prog}() {{
    local cur prev
    cur="${{COMP_WORDS[COMP_CWORD]}}"
    prev="${{COMP_WORDS[COMP_CWORD-1]}}"
    case "$prev" in
        {module_cases})
            COMPREPLY=($(compgen -W "{' '.join(ACTIONS)}" -- "$cur"))
            return;;
        completions)
            COMPREPLY=($(compgen -W "{' '.join(SHELLS)}" -- "$cur"))
            return;;
        --gitlab-url)
            return;;
    esac
    COMPREPLY=($(compgen -W "{commands} {' '.join(OPTIONS)}" -- "$cur"))
}}
complete -F _{prog} {prog}
"""


def zsh_script(prog: str, modules: list[str]) -> str:
    return f"#compdef {prog}\nautoload -U +X bashcompinit && bashcompinit\n{bash_script(prog, modules)}"


def fish_script(prog: str, modules: list[str]) -> str:
    lines = [
        f"complete -c {prog} -f",
        f'complete -c {prog} -n "__fish_use_subcommand" -a "{" ".join([*ACTIONS, *modules, "completions"])}"',
        f'complete -c {prog} -n "__fish_seen_subcommand_from {" ".join(modules)}" -a "{" ".join(ACTIONS)}"',
        f'complete -c {prog} -n "__fish_seen_subcommand_from completions" -a "{" ".join(SHELLS)}"',
        f"complete -c {prog} -s v -l verbose -d 'Verbose logging, specify twice for more'",
        f"complete -c {prog} -l json -d 'Emit logs as JSON lines'",
        f"complete -c {prog} -l gitlab-url -r -d 'GitLab instance URL'",
    ]
    return "\n".join(lines) + "\n"


def completion_script(shell: str, prog: str, modules: list[str]) -> str:
    generators = {"bash": bash_script, "zsh": zsh_script, "fish": fish_script}
    return generators[shell](prog, modules)
