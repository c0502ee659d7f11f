# This module assembles per-turn context

# +---------------------+
# |      Memory         |   (Persistent, room-scoped, adapter-backed)
# |---------------------|
# | messages            |
# | documents/fragments |
# | lore, descriptions  |
# | goals               |
# +---------------------+

# +---------------------+
# |     Character       |   (Static persona, sampled per turn)
# |---------------------|
# | bio, lore, topics   |
# | style, examples     |
# +---------------------+

#    \    /
#     \  /
#      \/
# +------------------------------+
# |            State             |   (Rebuilt for every message)
# |------------------------------|
# | actors, recent messages      |
# | goals, attachments           |
# | knowledge, interactions      |
# | validated actions/evaluators |
# | provider output              |
# +------------------------------+
#         |
#         v
#   [template -> model -> actions -> evaluators]
