"""Example usage of the typed_documents library."""

import asyncio

from typed_documents import DocumentMapper, Schema


class Person:
    def __init__(self, id=None, name="", age=0, friend=None):
        self.id = id
        self.name = name
        self.age = age
        self.friend = friend


# Declare documents using the schema language
schema_text = """
document Person in people {
    friend: Person
}
"""


async def main() -> None:
    # Parse the schema and wire a mapper to an in-memory store
    schema = Schema.parse(schema_text, types={"Person": Person})
    mapper = DocumentMapper(schema.registry)
    mapper.configure_memory()
    mapper.resolve()

    people = mapper.collection(Person)

    print("Creating Person documents...")
    alice = Person(name="Alice", age=30)
    await people.create(alice)
    for name, age in [("Bob", 25), ("Charlie", 35), ("Diana", 28), ("Eve", 22)]:
        person = Person(name=name, age=age, friend=alice)
        await people.create(person)
        print(f"  Created: {person.name} ({person.id})")

    # Query with the builder
    print("\nPeople older than 24, youngest first:")
    async for person in people.where_greater_than("age", 24).order_by("age"):
        friend = person.friend.name if person.friend else "-"
        print(f"  {person.name}, age {person.age}, friend {friend}")

    # Query with an expression
    print("\nFirst two friends of Alice by name:")
    for person in await people.apply("where friend == '%s' order by name limit 2" % alice.id).fetch():
        print(f"  {person.name}")

    print(f"\nTotal: {await people.count()} people")


if __name__ == "__main__":
    asyncio.run(main())
