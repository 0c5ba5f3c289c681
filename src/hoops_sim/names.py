from __future__ import annotations

import random

FIRST_NAMES = [
    "Aaron", "Andre", "Bam", "Brandon", "Cade", "Cam", "Chet", "Cole", "Damian", "Darius",
    "Dejounte", "Derrick", "Devin", "Dominique", "Donovan", "Elijah", "Evan", "Franz", "Gary", "Grant",
    "Isaiah", "Jabari", "Jalen", "Jamal", "Jaren", "Jarrett", "Jaylen", "Jordan", "Josh", "Julius",
    "Kawhi", "Keegan", "Kevin", "Khris", "Kyle", "Lamar", "Lonzo", "Malik", "Marcus", "Markelle",
    "Mikal", "Miles", "Myles", "Nic", "Obi", "Paolo", "Quentin", "Reggie", "Scottie", "Shai",
    "Spencer", "Stephon", "Terrence", "Tre", "Trey", "Tyrese", "Victor", "Walker", "Zach", "Zion",
]

LAST_NAMES = [
    "Adams", "Allen", "Bailey", "Barnes", "Bell", "Booker", "Bridges", "Brooks", "Brown", "Bryant",
    "Caldwell", "Carter", "Clarke", "Coleman", "Collins", "Cunningham", "Daniels", "Davis", "Dixon", "Douglas",
    "Edwards", "Ellis", "Evans", "Fields", "Fleming", "Ford", "Foster", "Freeman", "Garland", "Gibson",
    "Gordon", "Graham", "Grant", "Green", "Griffin", "Hardaway", "Harper", "Harris", "Hart", "Hayes",
    "Henderson", "Holiday", "Howard", "Hunter", "Jackson", "James", "Jenkins", "Johnson", "Jones", "Kennard",
    "King", "Lewis", "Lowry", "Marshall", "Mathews", "Maxey", "McBride", "Miller", "Mitchell", "Monroe",
    "Morris", "Murray", "Nance", "Oliver", "Parker", "Payton", "Porter", "Powell", "Randle", "Reed",
    "Richardson", "Robinson", "Rose", "Ross", "Russell", "Simmons", "Simpson", "Smart", "Stewart", "Terry",
    "Thomas", "Thompson", "Tucker", "Turner", "Walker", "Wallace", "Washington", "Watson", "Wells", "White",
    "Wiggins", "Williams", "Wilson", "Wright", "Young",
]


GENERATION_SUFFIXES = ("Jr.", "II", "III", "IV", "V")


class NameGenerator:
    """Seeded source of league-unique player names."""

    def __init__(self, seed: int | str | None = None, max_draws: int = 25) -> None:
        self._rng = random.Random(seed)
        self._max_draws = max_draws
        self._taken: set[str] = set()

    def _draw(self) -> str:
        return f"{self._rng.choice(FIRST_NAMES)} {self._rng.choice(LAST_NAMES)}"

    def next_name(self) -> str:
        for _ in range(self._max_draws):
            name = self._draw()
            if name not in self._taken:
                self._taken.add(name)
                return name
        # Crowded pool: keep a drawn name and tag it with a generation.
        base = self._draw()
        for suffix in GENERATION_SUFFIXES:
            candidate = f"{base} {suffix}"
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate
        candidate = f"{base} {len(self._taken)}"
        self._taken.add(candidate)
        return candidate
