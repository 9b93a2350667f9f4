# mapgen/builders/prefab/levels.py
"""Hand-made prefab content: whole levels, map sections and room vaults.

Templates are drawn in text, one character per cell. Leading newline is
ignored and short rows are padded with open floor.
"""
from enum import Enum, auto
from typing import Final, List, NamedTuple, Tuple


class HorizontalPlacement(Enum):
    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


class VerticalPlacement(Enum):
    TOP = auto()
    CENTER = auto()
    BOTTOM = auto()


class PrefabLevel(NamedTuple):
    template: str
    width: int
    height: int


class PrefabSection(NamedTuple):
    template: str
    width: int
    height: int
    placement: Tuple[HorizontalPlacement, VerticalPlacement]


class PrefabRoom(NamedTuple):
    template: str
    width: int
    height: int
    first_depth: int
    last_depth: int


def read_ascii(template: str, width: int, height: int) -> List[str]:
    """Template rows normalised to exactly ``height`` rows of ``width`` chars."""
    lines = template.split("\n")
    if lines and lines[0] == "":
        lines = lines[1:]
    rows = []
    for y in range(height):
        line = lines[y] if y < len(lines) else ""
        if len(line) > width:
            raise ValueError(f"Template row {y} is {len(line)} wide, expected {width}")
        rows.append(line.ljust(width))
    return rows


GUARD_BARRACKS: Final[PrefabLevel] = PrefabLevel(
    template="""
########################################
#          #            #              #
#  g       #     %      #     o        #
#          #            #              #
#####  #########  ##########  ##########
#                                      #
#   @        ^           !          >  #
#                                      #
######  #######################  #######
#         #           #                #
#  o      #     g     #        %       #
#         #           #                #
########################################
""",
    width=40,
    height=13,
)

GUARD_POST: Final[PrefabSection] = PrefabSection(
    template="""
      #     
   #######  
   #     #  
####  g  #  
         #  
####  o  #  
   #     #  
   #######  
            
""",
    width=12,
    height=9,
    placement=(HorizontalPlacement.RIGHT, VerticalPlacement.TOP),
)

TOTALLY_NOT_A_TRAP: Final[PrefabRoom] = PrefabRoom(
    template="""
     
 ^^^ 
 ^!^ 
 ^^^ 
     
""",
    width=5,
    height=5,
    first_depth=0,
    last_depth=100,
)

SILLY_SMILE: Final[PrefabRoom] = PrefabRoom(
    template="""
      
 ^  ^ 
  ##  
      
 #### 
      
""",
    width=6,
    height=6,
    first_depth=0,
    last_depth=100,
)

CHECKERBOARD: Final[PrefabRoom] = PrefabRoom(
    template="""
      
 #^#  
 g#%# 
 #!#  
 ^# # 
      
""",
    width=6,
    height=6,
    first_depth=0,
    last_depth=100,
)

MASTER_VAULT_LIST: Final[Tuple[PrefabRoom, ...]] = (
    TOTALLY_NOT_A_TRAP,
    SILLY_SMILE,
    CHECKERBOARD,
)
