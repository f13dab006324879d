"""
Parsers for container environment overrides given as .env files or KEY=VALUE pairs.
"""
from typing import Dict, Iterable, List

from dotenv import dotenv_values


class EnvParser:
    """
    Turns .env files and KEY=VALUE options into the env list the container
    runtime expects.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Variables defined in the file. Keys without a
            value are dropped.
        """
        return {k: v for k, v in dotenv_values(env_path).items() if v is not None}

    @staticmethod
    def parse_pairs(pairs: Iterable[str]) -> Dict[str, str]:
        """
        Parses ``KEY=VALUE`` strings; a bare ``KEY`` maps to an empty value.
        """
        env = {}
        for pair in pairs:
            key, _, value = pair.partition("=")
            key = key.strip()
            if key:
                env[key] = value
        return env

    @staticmethod
    def to_env_list(env: Dict[str, str]) -> List[str]:
        """Renders a mapping as ``KEY=VALUE`` entries."""
        return [f"{k}={v}" for k, v in env.items()]
