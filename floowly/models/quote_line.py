"""QuoteLine model for quote line items."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from floowly.database import Base, BigIntegerPK
from floowly.utils.formatters import money_json, number_json


class QuoteLine(Base):
    """
    Quote Line (one priced row of a quote).

    subtotal, tax_amount and total are recomputed from quantity, unit_price
    and tax_rate every time the line is written.
    """

    __tablename__ = 'quote_line'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    quote_id = Column(BigInteger, ForeignKey('quote.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    # Inputs keep every decimal validation accepts (see INPUT_DECIMAL_PLACES)
    quantity = Column(Numeric(18, 6), nullable=False)
    unit_price = Column(Numeric(18, 6), nullable=False)
    tax_rate = Column(Numeric(9, 6), nullable=False, default=0)
    subtotal = Column(Numeric(14, 2), nullable=False)
    tax_amount = Column(Numeric(14, 2), nullable=False)
    total = Column(Numeric(14, 2), nullable=False)

    # Relationships
    quote = relationship('Quote', back_populates='items')

    def __repr__(self):
        return f"<QuoteLine(id={self.id}, quote_id={self.quote_id}, name='{self.name}', qty={self.quantity}, total={self.total})>"

    def to_json(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'quantity': number_json(self.quantity),
            'unit_price': number_json(self.unit_price),
            'tax_rate': number_json(self.tax_rate),
            'subtotal': money_json(self.subtotal),
            'tax_amount': money_json(self.tax_amount),
            'total': money_json(self.total),
        }
