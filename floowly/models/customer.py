"""Customer model."""
import enum
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from floowly.database import Base, BigIntegerPK
from floowly.utils.formatters import isoformat


class CustomerStatus(enum.Enum):
    """Customer pipeline status."""
    ACTIVE = 'active'
    PROSPECT = 'prospect'
    INACTIVE = 'inactive'


class Customer(Base):
    """Customer (tenant-scoped)."""

    __tablename__ = 'customer'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    company = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=CustomerStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    quotes = relationship('Quote', back_populates='customer')
    jobs = relationship('Job', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', status='{self.status}')>"

    def to_summary(self):
        """Compact representation embedded in quote payloads."""
        return {
            'id': self.id,
            'name': self.name,
            'company': self.company,
            'email': self.email,
            'phone': self.phone,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'address': self.address,
            'notes': self.notes,
            'status': self.status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        })
        return data
