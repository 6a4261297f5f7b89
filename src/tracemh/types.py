"""Shared type aliases for `tracemh`.

Everything is routed through `beartype.typing` so the runtime checks
installed by `beartype_this_package` see consistent types.
"""

import beartype.typing as btyping
import jaxtyping as jtyping

##########
# Typing #
##########

Any = btyping.Any
Callable = btyping.Callable
Sequence = btyping.Sequence

PRNGKey = jtyping.PRNGKeyArray
