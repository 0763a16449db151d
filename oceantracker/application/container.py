from dependency_injector import containers, providers

from oceantracker.application.create_shipment import CreateShipmentUseCase
from oceantracker.application.list_shipments import ListShipmentsUseCase
from oceantracker.application.shipment_stats import GetShipmentStatsUseCase
from oceantracker.application.update_shipment_status import UpdateShipmentStatusUseCase
from oceantracker.infrastructure.container import InfrastructureContainer


class ApplicationContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    infrastructure_container = providers.Container[InfrastructureContainer](
        InfrastructureContainer,
        config=config.infrastructure,
    )

    create_shipment_use_case = providers.Singleton[CreateShipmentUseCase](
        CreateShipmentUseCase, unit_of_work=infrastructure_container.unit_of_work
    )
    update_shipment_status_use_case = providers.Singleton[UpdateShipmentStatusUseCase](
        UpdateShipmentStatusUseCase, unit_of_work=infrastructure_container.unit_of_work
    )
    list_shipments_use_case = providers.Singleton[ListShipmentsUseCase](
        ListShipmentsUseCase, unit_of_work=infrastructure_container.unit_of_work
    )
    get_shipment_stats_use_case = providers.Singleton[GetShipmentStatsUseCase](
        GetShipmentStatsUseCase, unit_of_work=infrastructure_container.unit_of_work
    )
