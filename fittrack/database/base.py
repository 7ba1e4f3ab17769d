from sqlalchemy import DateTime
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Millisecond precision so correlation timestamps compare equal across both stores
PreciseDateTime = DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql")
