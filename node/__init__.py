"""
Node module for the Ben-Or randomized binary consensus protocol.

Every node runs the same round loop: it proposes its current bit, adopts the
majority proposal (or a random bit when there is none), votes, and decides
once a majority of votes agree on the same bit.

Key responsibilities:
- Run the propose/vote round loop until a decision or an external stop
- Record peer messages, deduplicated by sender, round and kind
- Expose the node state and commands over HTTP
- Stay inert when started as a faulty node
"""

__version__ = "1.0.0"
