"""Business dataset exposed through the data plane.

Only the columns the row contract, filters, sort keys and scope columns
reference are mapped here. Both tables belong to the ticketing system and
are flagged external, so neither startup nor migrations create them.
"""
from sqlalchemy import Column, String, Text, DateTime, Integer, Float
from gateway.common.database import Base


class OpenTicket(Base):
    """Open incident for a terminal."""
    __tablename__ = "open_tickets"
    __table_args__ = {"info": {"external": True}}

    terminal_id = Column(String(50), primary_key=True)
    terminal_name = Column(String(255), nullable=True)
    priority = Column(String(50), nullable=True)
    mode = Column(String(50), nullable=True)
    initial_problem = Column(Text, nullable=True)
    current_problem = Column(Text, nullable=True)
    incident_start_datetime = Column(DateTime(timezone=True), nullable=True, index=True)
    count = Column(Integer, nullable=True)
    status = Column(String(50), nullable=True)
    remarks = Column(Text, nullable=True)
    balance = Column(Float, nullable=True)
    condition = Column(String(100), nullable=True)
    tickets_no = Column(String(50), nullable=True)
    tickets_duration = Column(Integer, nullable=True)
    open_time = Column(DateTime(timezone=True), nullable=True)
    close_time = Column(DateTime(timezone=True), nullable=True)
    problem_history = Column(Text, nullable=True)
    mode_history = Column(Text, nullable=True)

    def __repr__(self):
        return f"<OpenTicket(terminal_id={self.terminal_id}, status={self.status})>"


class Machine(Base):
    """Terminal dimension row joined onto tickets."""
    __tablename__ = "machines"
    __table_args__ = {"info": {"external": True}}

    terminal_id = Column(String(50), primary_key=True)
    flm_name = Column(String(100), nullable=True, index=True)
    flm = Column(String(100), nullable=True)
    slm = Column(String(100), nullable=True)
    net = Column(String(100), nullable=True)

    def __repr__(self):
        return f"<Machine(terminal_id={self.terminal_id}, flm_name={self.flm_name})>"
