"""Job model: scheduled work on the calendar."""
import enum
from sqlalchemy import Column, BigInteger, String, Numeric, Date, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from floowly.database import Base, BigIntegerPK
from floowly.utils.formatters import isoformat, money_json, number_json


class JobStatus(enum.Enum):
    """Job progress on the calendar."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


DEFAULT_JOB_TIMEZONE = 'Europe/Stockholm'


class Job(Base):
    """
    Job (tenant-scoped) booked for a customer, optionally from a quote.

    start_date/end_date are calendar days; start_time/end_time are optional
    'HH:MM' wall-clock times in the job's timezone.
    """

    __tablename__ = 'job'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False, index=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False, index=True)
    quote_id = Column(BigInteger, ForeignKey('quote.id', ondelete='SET NULL'), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    hours = Column(Numeric(12, 6), nullable=True)
    material_cost = Column(Numeric(18, 6), nullable=True)
    quoted_price = Column(Numeric(14, 2), nullable=True)
    status = Column(String(20), nullable=False, default=JobStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=False, default=DEFAULT_JOB_TIMEZONE)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    customer = relationship('Customer', back_populates='jobs')
    quote = relationship('Quote')

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.title}', start={self.start_date}, status='{self.status}')>"

    def to_json(self):
        quote = None
        if self.quote:
            quote = {
                'id': self.quote.id,
                'quote_number': self.quote.quote_number,
                'title': self.quote.title,
                'total': money_json(self.quote.total),
                'status': self.quote.status,
            }
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'customer': self.customer.to_summary() if self.customer else None,
            'quote_id': self.quote_id,
            'quote': quote,
            'title': self.title,
            'description': self.description,
            'start_date': isoformat(self.start_date),
            'end_date': isoformat(self.end_date),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'hours': number_json(self.hours),
            'material_cost': number_json(self.material_cost),
            'quoted_price': money_json(self.quoted_price),
            'status': self.status,
            'notes': self.notes,
            'timezone': self.timezone,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
