"""
Campaign endpoints

- Linear campaigns: email blocks, enrolled prospects, attached folders
- Workflow builder: nodes, edges, block migration and campaign start
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_current_team, get_current_user
from leadwatch.models import Team, User, get_db
from leadwatch.models.campaign import Campaign
from leadwatch.schemas.campaign import (
    BlockReorderRequest,
    BlockResponse,
    CampaignCreate,
    CampaignFolderResponse,
    CampaignProspectAdd,
    CampaignProspectResponse,
    CampaignResponse,
    CampaignStartResponse,
    CampaignUpdate,
    EdgeCreate,
    EdgeResponse,
    EmailBlockConfig,
    FolderAssignRequest,
    FolderAssignResponse,
    NodeCreate,
    NodePositionsUpdate,
    NodeResponse,
    NodeUpdate,
    WorkflowResponse,
)
from leadwatch.services import campaigns as campaign_service
from leadwatch.services import workflow_builder

logger = setup_logging(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


def _campaign_response(db: Session, campaign: Campaign) -> CampaignResponse:
    response = CampaignResponse.model_validate(campaign)
    response.prospect_count = campaign_service.count_prospects(db, campaign.id)
    return response


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return [_campaign_response(db, c) for c in campaign_service.list_campaigns(db, team.id)]


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    request: CampaignCreate,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign = campaign_service.create_campaign(
        db, team.id, user.id, request.name, request.description, request.blocks
    )
    return _campaign_response(db, campaign)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return _campaign_response(db, campaign_service.get_campaign(db, team.id, campaign_id))


@router.patch("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: int,
    request: CampaignUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign = campaign_service.update_campaign(
        db, team.id, campaign_id, request.model_dump(exclude_unset=True)
    )
    return _campaign_response(db, campaign)


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign_service.delete_campaign(db, team.id, campaign_id)
    return {"success": True}


# Blocks

@router.get("/{campaign_id}/blocks", response_model=List[BlockResponse])
async def list_blocks(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.list_blocks(db, team.id, campaign_id)


@router.post("/{campaign_id}/blocks", response_model=BlockResponse, status_code=201)
async def create_email_block(
    campaign_id: int,
    request: EmailBlockConfig,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.create_email_block(db, team.id, campaign_id, request.model_dump())


@router.put("/{campaign_id}/blocks/reorder", response_model=List[BlockResponse])
async def reorder_blocks(
    campaign_id: int,
    request: BlockReorderRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.reorder_blocks(db, team.id, campaign_id, request.block_ids)


@router.patch("/blocks/{block_id}", response_model=BlockResponse)
async def update_block(
    block_id: int,
    request: EmailBlockConfig,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.update_block(db, team.id, block_id, request.model_dump())


@router.delete("/blocks/{block_id}")
async def delete_block(
    block_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign_service.delete_block(db, team.id, block_id)
    return {"success": True}


# Prospects and folders

@router.get("/{campaign_id}/prospects", response_model=List[CampaignProspectResponse])
async def list_campaign_prospects(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.list_campaign_prospects(db, team.id, campaign_id)


@router.post("/{campaign_id}/prospects", status_code=201)
async def add_campaign_prospect(
    campaign_id: int,
    request: CampaignProspectAdd,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign_prospect = campaign_service.add_prospect(db, team.id, campaign_id, request.prospect_id, user.id)
    return {"success": True, "campaign_prospect_id": campaign_prospect.id}


@router.delete("/{campaign_id}/prospects/{prospect_id}")
async def remove_campaign_prospect(
    campaign_id: int,
    prospect_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    campaign_service.remove_prospect(db, team.id, campaign_id, prospect_id)
    return {"success": True}


@router.get("/{campaign_id}/folders", response_model=List[CampaignFolderResponse])
async def list_campaign_folders(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return campaign_service.list_campaign_folders(db, team.id, campaign_id)


@router.post("/{campaign_id}/folders", response_model=FolderAssignResponse)
async def assign_folder(
    campaign_id: int,
    request: FolderAssignRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    """Attach a folder and enroll its prospects, or detach it with ``assign=false``."""
    return campaign_service.assign_folder(db, team.id, campaign_id, request.folder_id, request.assign)


# Workflow builder

@router.get("/{campaign_id}/workflow", response_model=WorkflowResponse)
async def get_workflow(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return workflow_builder.get_workflow(db, team.id, campaign_id)


@router.post("/{campaign_id}/workflow/nodes", response_model=NodeResponse, status_code=201)
async def create_node(
    campaign_id: int,
    request: NodeCreate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return workflow_builder.create_node(
        db, team.id, campaign_id, request.type, request.config, request.position_x, request.position_y
    )


@router.put("/workflow/nodes/positions")
async def update_node_positions(
    request: NodePositionsUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    moved = workflow_builder.update_node_positions(
        db, team.id, [position.model_dump() for position in request.positions]
    )
    return {"success": True, "updated": moved}


@router.patch("/workflow/nodes/{node_id}", response_model=NodeResponse)
async def update_node(
    node_id: int,
    request: NodeUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return workflow_builder.update_node(
        db, team.id, node_id, request.config, request.position_x, request.position_y
    )


@router.delete("/workflow/nodes/{node_id}")
async def delete_node(
    node_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    workflow_builder.delete_node(db, team.id, node_id)
    return {"success": True}


@router.post("/{campaign_id}/workflow/edges", response_model=EdgeResponse, status_code=201)
async def create_edge(
    campaign_id: int,
    request: EdgeCreate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return workflow_builder.create_edge(db, team.id, campaign_id, **request.model_dump())


@router.delete("/workflow/edges/{edge_id}")
async def delete_edge(
    edge_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    workflow_builder.delete_edge(db, team.id, edge_id)
    return {"success": True}


@router.post("/{campaign_id}/workflow/migrate")
async def migrate_blocks(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return workflow_builder.migrate_blocks_to_workflow(db, team.id, campaign_id)


@router.post("/{campaign_id}/start", response_model=CampaignStartResponse)
async def start_campaign(
    campaign_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    """Place every enrolled prospect on the start node; the workflow cron takes over from there."""
    return workflow_builder.start_campaign_execution(db, team.id, campaign_id)
