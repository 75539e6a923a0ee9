"""Name -> rule module registry, populated once at startup."""

from __future__ import annotations

import logging

from gameserver.rules.base import RuleModule

logger = logging.getLogger("gameserver.rules")


class RuleRegistry:
    def __init__(self, modules: list[RuleModule] | None = None) -> None:
        self._modules: dict[str, RuleModule] = {}
        self._frozen = False
        for module in modules or []:
            self.register(module)

    def register(self, module: RuleModule) -> None:
        if self._frozen:
            raise RuntimeError("Rule registry is read-only after startup")
        if module.name in self._modules:
            raise ValueError(f"Rule module already registered: {module.name}")
        self._modules[module.name] = module
        logger.debug("Registered rule module %s", module.name)

    def freeze(self) -> RuleRegistry:
        self._frozen = True
        return self

    def get(self, name: str) -> RuleModule | None:
        return self._modules.get(name)

    def names(self) -> list[str]:
        return sorted(self._modules)

    def __contains__(self, name: str) -> bool:
        return name in self._modules


def default_registry() -> RuleRegistry:
    """Registry with every game type shipped with the server."""
    from gameserver.rules.draw_a_card import DrawACardRules
    from gameserver.rules.tictactoe import TicTacToeRules

    return RuleRegistry([TicTacToeRules(), DrawACardRules()]).freeze()
