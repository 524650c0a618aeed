"""Generate example .btx files to see what the format looks like."""

import sys
sys.path.insert(0, str(__import__("pathlib").Path(__file__).parent.parent))

from bracetext import Encoder, dumps
from examples.models import Package, Person, Point, Version

people = [
    Person(Name="Ada Lovelace", Age=36, Tags=["math", "engines"], Home=Point(3, 4)),
    Person(Name="Charles Babbage", Age=79, Tags=["engines"]),
    Person(Name="anonymous"),
]

package = Package(
    ID=7,
    Name="bracetext",
    Release=Version((0, 1, 0)),
    Score=0.5,
    Depends={"rich": Version((13, 0)), "pytest": Version((7, 0))},
)

keyed = "example.btx"
with open(keyed, "w", encoding="utf-8") as f:
    f.write("// one package, keyed framing\n")
    f.write(dumps(package))

tabular = "people.btx"
with open(tabular, "w", encoding="utf-8") as f:
    encoder = Encoder(f, tabular=True)
    encoder.write_header(Person)
    for person in people:
        encoder.encode(person)

print(f"Generated {keyed} and {tabular}")
print()
print(open(keyed, encoding="utf-8").read())
print(open(tabular, encoding="utf-8").read())
