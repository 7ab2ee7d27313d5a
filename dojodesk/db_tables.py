# db_tables.py: single source of truth for table names
COMPETITIONS             = "competitions"      # default schema: public
COMPETITION_ENTRIES      = "competition_entries"
COMPETITION_DISCIPLINES  = "competition_disciplines"
COMPETITION_BOUTS        = "competition_bouts"
COMPETITION_RESULTS      = "competition_results"
COMPETITION_TEAMS        = "competition_teams"
COMPETITION_TEAM_MEMBERS = "competition_team_members"
COMPETITION_COACHES      = "competition_coaches"
MEMBERS                  = "members"
CLUBS                    = "clubs"
LOCATIONS                = "location"
MARTIAL_ART              = "martial_art"
MARTIAL_ART_CLASSES      = "martial_art_classes"
BELT_SYSTEM              = "belt_system"
ORGANISATIONS            = "organisations"
