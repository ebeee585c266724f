"""Print size management: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Integer, String
from protean.utils.globals import current_domain

from printshop.catalogue.print_size import PrintSize
from printshop.domain import printshop
from printshop.shared.errors import DuplicateEntry


@printshop.command(part_of="PrintSize")
class AddPrintSize:
    size_code = String(required=True, max_length=20)
    display_name = String(required=True, max_length=100)
    base_price = Float(required=True, min_value=0.0)
    sort_order = Integer(default=0)


@printshop.command(part_of="PrintSize")
class ChangePrintSizePrice:
    size_code = String(required=True, max_length=20)
    base_price = Float(required=True, min_value=0.0)


@printshop.command(part_of="PrintSize")
class DeactivatePrintSize:
    size_code = String(required=True, max_length=20)


def _require(repo, size_code):
    size = repo.by_code(size_code)
    if size is None:
        raise ObjectNotFoundError({"size_code": [f"Print size {size_code} does not exist"]})
    return size


@printshop.command_handler(part_of=PrintSize)
class ManagePrintSizesHandler:
    @handle(AddPrintSize)
    def add_print_size(self, command):
        repo = current_domain.repository_for(PrintSize)
        if repo.by_code(command.size_code.strip()) is not None:
            raise DuplicateEntry({"size_code": [f"Print size {command.size_code} already exists"]})

        size = PrintSize.create(
            size_code=command.size_code,
            display_name=command.display_name,
            base_price=command.base_price,
            sort_order=command.sort_order or 0,
        )
        repo.add(size)
        return str(size.id)

    @handle(ChangePrintSizePrice)
    def change_price(self, command):
        repo = current_domain.repository_for(PrintSize)
        size = _require(repo, command.size_code)
        size.change_price(command.base_price)
        repo.add(size)

    @handle(DeactivatePrintSize)
    def deactivate(self, command):
        repo = current_domain.repository_for(PrintSize)
        size = _require(repo, command.size_code)
        size.deactivate()
        repo.add(size)
