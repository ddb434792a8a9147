"""
Team roster loading from CSV files.
"""
import csv
from pathlib import Path
from typing import List, Dict
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"team_name", "member_name", "email"}


@dataclass
class RosterData:
    """Roster loaded from CSV, not yet registered."""
    team_name: str
    members: List[Dict[str, str]] = field(default_factory=list)


class CSVTeamLoader:
    """Load team rosters from a CSV file with one row per member."""

    def __init__(self, csv_file: str):
        self.csv_file = csv_file

    def load_rosters(self) -> List[RosterData]:
        """Load rosters from CSV file, in the order teams first appear."""
        if not Path(self.csv_file).exists():
            raise FileNotFoundError(f"Teams CSV file not found: {self.csv_file}")

        rosters: Dict[str, RosterData] = {}

        with open(self.csv_file, 'r', newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            missing = REQUIRED_COLUMNS - set(reader.fieldnames or [])
            if missing:
                raise ValueError(f"Teams CSV is missing columns: {', '.join(sorted(missing))}")

            for row in reader:
                team_name = (row['team_name'] or '').strip()
                if not team_name:
                    logger.warning(f"Skipping CSV row without team name at line {reader.line_num}")
                    continue

                roster = rosters.setdefault(team_name.lower(), RosterData(team_name=team_name))
                roster.members.append({
                    'name': row['member_name'] or '',
                    'email': row['email'] or '',
                    'contact': (row.get('contact') or '').strip()
                })

        logger.info(f"Loaded {len(rosters)} rosters from CSV")
        return list(rosters.values())
