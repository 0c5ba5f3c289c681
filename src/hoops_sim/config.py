"""Static simulation configuration constants."""

GAME_MINUTES = 48
HALF_MINUTES = GAME_MINUTES // 2
OVERTIME_MINUTES = 5
ROSTER_SIZE = 15
STARTERS = 5
MIN_ROTATION_SIZE = 6
MAX_ROTATION_SIZE = 10
DEFAULT_ROTATION_SIZE = 8

REGULAR_SEASON_GAMES = 82
POSSESSIONS_RANGE = (190, 210)
OVERTIME_POSSESSIONS_RANGE = (20, 24)
MAX_SHOTS_PER_POSSESSION = 4

SERIES_WINS = 4
PLAY_IN_WINS = 1
PLAYOFF_TEAMS_PER_CONFERENCE = 8
PLAY_IN_TEAMS = 4
# Two opening games per conference, then the decider.
PLAY_IN_GAMES = 3
# Below this many qualifiers the play-in would reach top seeds.
MIN_QUALIFIERS_FOR_PLAY_IN = PLAY_IN_TEAMS + 2

# Higher seed hosts games 1, 2, 5 and 7.
SERIES_HOME_PATTERN = (True, True, False, False, True, False, True)

# Share of the league that plays on an average calendar day.
CALENDAR_DENSITY = 0.60

# (starter, bench) minutes for positions that carry a second player.
ROTATION_PRESET_MINUTES: dict[int, tuple[int, int]] = {
    10: (30, 18),
    9: (32, 16),
    8: (34, 14),
    7: (36, 12),
    6: (36, 12),
}

# team_id, city, nickname, conference, division
LEAGUE_TEAMS: tuple[tuple[str, str, str, str, str], ...] = (
    ("BOS", "Boston", "Celtics", "East", "Atlantic"),
    ("BKN", "Brooklyn", "Nets", "East", "Atlantic"),
    ("NYK", "New York", "Knicks", "East", "Atlantic"),
    ("PHI", "Philadelphia", "76ers", "East", "Atlantic"),
    ("TOR", "Toronto", "Raptors", "East", "Atlantic"),
    ("CHI", "Chicago", "Bulls", "East", "Central"),
    ("CLE", "Cleveland", "Cavaliers", "East", "Central"),
    ("DET", "Detroit", "Pistons", "East", "Central"),
    ("IND", "Indiana", "Pacers", "East", "Central"),
    ("MIL", "Milwaukee", "Bucks", "East", "Central"),
    ("ATL", "Atlanta", "Hawks", "East", "Southeast"),
    ("CHA", "Charlotte", "Hornets", "East", "Southeast"),
    ("MIA", "Miami", "Heat", "East", "Southeast"),
    ("ORL", "Orlando", "Magic", "East", "Southeast"),
    ("WAS", "Washington", "Wizards", "East", "Southeast"),
    ("DEN", "Denver", "Nuggets", "West", "Northwest"),
    ("MIN", "Minnesota", "Timberwolves", "West", "Northwest"),
    ("OKC", "Oklahoma City", "Thunder", "West", "Northwest"),
    ("POR", "Portland", "Trail Blazers", "West", "Northwest"),
    ("UTA", "Utah", "Jazz", "West", "Northwest"),
    ("GSW", "Golden State", "Warriors", "West", "Pacific"),
    ("LAC", "LA", "Clippers", "West", "Pacific"),
    ("LAL", "Los Angeles", "Lakers", "West", "Pacific"),
    ("PHX", "Phoenix", "Suns", "West", "Pacific"),
    ("SAC", "Sacramento", "Kings", "West", "Pacific"),
    ("DAL", "Dallas", "Mavericks", "West", "Southwest"),
    ("HOU", "Houston", "Rockets", "West", "Southwest"),
    ("MEM", "Memphis", "Grizzlies", "West", "Southwest"),
    ("NOP", "New Orleans", "Pelicans", "West", "Southwest"),
    ("SAS", "San Antonio", "Spurs", "West", "Southwest"),
)
